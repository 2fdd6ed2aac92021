from .rollup import RollupResult, apply_rollup, effective_status, evidence_satisfies_review, rollup

__all__ = [
    "RollupResult",
    "apply_rollup",
    "effective_status",
    "evidence_satisfies_review",
    "rollup",
]
