"""
HalalCheck verdict engine: classification normalization, evidence ledger,
status rollup, session cache, and certification-pipeline handoff.
"""
__version__ = "1.0.0"
