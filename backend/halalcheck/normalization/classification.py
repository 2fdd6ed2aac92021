"""
Deterministic classification normalization. No jurisprudence, no guessing.
Raw classifier label + confidence -> three-valued status + risk band.
Unknown labels never approve: anything not explicitly mapped is REQUIRES_REVIEW.
"""
import logging
from typing import Any, Iterable, List, Optional, Tuple

from halalcheck.config import DEFAULT_CONFIDENCE
from halalcheck.errors import MalformedRecord
from halalcheck.models.assessment import IngredientAssessment, IngredientStatus, RiskBand

logger = logging.getLogger(__name__)

# Raw label (upper, trimmed) -> status. Both classifier vocabularies are accepted.
LABEL_TO_STATUS: dict[str, IngredientStatus] = {
    "HALAL": IngredientStatus.APPROVED,
    "APPROVED": IngredientStatus.APPROVED,
    "HARAM": IngredientStatus.PROHIBITED,
    "PROHIBITED": IngredientStatus.PROHIBITED,
    "MASHBOOH": IngredientStatus.REQUIRES_REVIEW,
    "QUESTIONABLE": IngredientStatus.REQUIRES_REVIEW,
    "VERIFY_SOURCE": IngredientStatus.REQUIRES_REVIEW,
}

# Keys consumed by the normalizer; everything else is opaque supplemental payload
_CORE_KEYS = ("name", "label", "status", "confidence", "category")


def map_label(raw_label: Optional[str]) -> IngredientStatus:
    key = (raw_label or "").strip().upper().replace(" ", "_").replace("-", "_")
    status = LABEL_TO_STATUS.get(key)
    if status is None:
        logger.info("NORMALIZE unrecognized_label label=%r -> REQUIRES_REVIEW", raw_label)
        return IngredientStatus.REQUIRES_REVIEW
    return status


def coerce_confidence(raw: Any) -> float:
    """Missing or non-numeric confidence -> DEFAULT_CONFIDENCE; clamp to 0-100."""
    if raw is None or isinstance(raw, bool):
        return float(DEFAULT_CONFIDENCE)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.info("NORMALIZE non_numeric_confidence value=%r default=%s", raw, DEFAULT_CONFIDENCE)
        return float(DEFAULT_CONFIDENCE)
    if value != value:  # NaN
        return float(DEFAULT_CONFIDENCE)
    return max(0.0, min(100.0, value))


def risk_band(confidence: float) -> RiskBand:
    if confidence > 80:
        return RiskBand.LOW
    if confidence > 50:
        return RiskBand.MEDIUM
    return RiskBand.HIGH


def normalize_record(record: dict) -> IngredientAssessment:
    """
    Map one classifier record to an IngredientAssessment.
    Raises MalformedRecord when the record has no usable name.
    """
    if not isinstance(record, dict):
        raise MalformedRecord("record is not an object", record)
    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        raise MalformedRecord("missing ingredient name", record)

    # Older classifier responses carry the label under "status"
    raw_label = record.get("label") or record.get("status")
    status = map_label(raw_label)
    confidence = coerce_confidence(record.get("confidence"))
    supplemental = {k: v for k, v in record.items() if k not in _CORE_KEYS}
    if raw_label is not None:
        supplemental.setdefault("raw_label", raw_label)

    return IngredientAssessment(
        name=name.strip(),
        classifier_status=status,
        status=status,
        risk_band=risk_band(confidence),
        confidence=confidence,
        category=record.get("category") or "General",
        supplemental=supplemental,
    )


def normalize_batch(records: Iterable[Any]) -> Tuple[List[IngredientAssessment], List[str]]:
    """
    Normalize a classifier response. Malformed records and duplicate names are dropped
    individually with a warning; the rest of the batch proceeds in response order.
    """
    ingredients: List[IngredientAssessment] = []
    warnings: List[str] = []
    seen: set = set()
    for idx, record in enumerate(records or []):
        try:
            ing = normalize_record(record)
        except MalformedRecord as e:
            msg = f"ingredient #{idx + 1} rejected: {e.reason}"
            logger.warning("NORMALIZE rejected index=%d reason=%s", idx, e.reason)
            warnings.append(msg)
            continue
        key = ing.name.lower()
        if key in seen:
            msg = f"ingredient #{idx + 1} rejected: duplicate name {ing.name!r}"
            logger.warning("NORMALIZE duplicate index=%d name=%s", idx, ing.name)
            warnings.append(msg)
            continue
        seen.add(key)
        ingredients.append(ing)
    logger.info(
        "NORMALIZE batch accepted=%d rejected=%d",
        len(ingredients), len(warnings),
    )
    return ingredients, warnings
