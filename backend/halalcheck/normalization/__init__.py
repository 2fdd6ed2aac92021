from .classification import (
    LABEL_TO_STATUS,
    coerce_confidence,
    map_label,
    normalize_batch,
    normalize_record,
    risk_band,
)

__all__ = [
    "LABEL_TO_STATUS",
    "coerce_confidence",
    "map_label",
    "normalize_batch",
    "normalize_record",
    "risk_band",
]
