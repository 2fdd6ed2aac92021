"""
Verification evidence: intake validation, ledger mutations, and local previews.
"""
from .ledger import EvidenceUpload, VerificationLedger, validate_upload
from .preview import PreviewStore

__all__ = [
    "EvidenceUpload",
    "VerificationLedger",
    "validate_upload",
    "PreviewStore",
]
