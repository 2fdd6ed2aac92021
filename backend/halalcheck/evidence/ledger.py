"""
Verification ledger: per-ingredient append/remove of evidence records.
Every mutation is followed by a synchronous rollup of the owning product.
The ledger records that evidence exists; it never reads file content.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from halalcheck.config import EVIDENCE_ALLOWED_MIME_TYPES, EVIDENCE_MAX_BYTES
from halalcheck.errors import FileRejected, UnknownIngredient
from halalcheck.evaluation.rollup import apply_rollup
from halalcheck.evidence.preview import PreviewStore
from halalcheck.models.assessment import (
    EvidenceRecord,
    EvidenceType,
    IngredientAssessment,
    ProductAssessment,
)

logger = logging.getLogger(__name__)

_MIME_SUFFIX = {"application/pdf": ".pdf", "image/jpeg": ".jpg", "image/png": ".png"}


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class EvidenceUpload:
    """An incoming file as handed over by the file picker / multipart form."""
    filename: str
    mime_type: str
    data: bytes
    declared_type: EvidenceType = EvidenceType.OTHER

    @property
    def byte_size(self) -> int:
        return len(self.data)


def validate_upload(upload: EvidenceUpload) -> None:
    """Raises FileRejected if size or type is outside intake limits."""
    mime = (upload.mime_type or "").split(";")[0].strip().lower()
    if upload.byte_size > EVIDENCE_MAX_BYTES:
        raise FileRejected(upload.filename, f"file is {upload.byte_size} bytes; limit is {EVIDENCE_MAX_BYTES}")
    if mime not in EVIDENCE_ALLOWED_MIME_TYPES:
        raise FileRejected(upload.filename, f"unsupported type {upload.mime_type!r}; expected PDF, JPEG or PNG")


class VerificationLedger:

    def __init__(self, previews: PreviewStore, clock: Optional[Callable[[], int]] = None):
        self._previews = previews
        self._clock = clock or now_ms

    def _ingredient(self, product: ProductAssessment, name: str) -> IngredientAssessment:
        ing = product.get_ingredient(name)
        if ing is None:
            raise UnknownIngredient(product.id, name)
        return ing

    def attach(self, product: ProductAssessment, ingredient_name: str, upload: EvidenceUpload) -> EvidenceRecord:
        ing = self._ingredient(product, ingredient_name)
        try:
            validate_upload(upload)
        except FileRejected as e:
            logger.warning(
                "EVIDENCE_REJECTED product_id=%s ingredient=%s file=%s reason=%s",
                product.id, ingredient_name, upload.filename, e.reason,
            )
            raise
        mime = upload.mime_type.split(";")[0].strip().lower()
        handle = self._previews.create(upload.data, _MIME_SUFFIX.get(mime, ""))
        record = EvidenceRecord(
            id=uuid.uuid4().hex,
            filename=upload.filename,
            declared_type=upload.declared_type,
            captured_at=self._clock(),
            byte_size=upload.byte_size,
            mime_type=mime,
            preview_handle=handle,
        )
        ing.evidence.append(record)
        apply_rollup(product)
        logger.info(
            "EVIDENCE_ATTACH product_id=%s ingredient=%s evidence_id=%s type=%s bytes=%d status=%s overall=%s",
            product.id, ingredient_name, record.id, record.declared_type.value,
            record.byte_size, ing.status.value, product.overall_status.value,
        )
        return record

    def remove(self, product: ProductAssessment, ingredient_name: str, evidence_id: str) -> bool:
        """Remove evidence if present. Absent id is a no-op and returns False."""
        ing = self._ingredient(product, ingredient_name)
        record = ing.find_evidence(evidence_id)
        if record is None:
            logger.info(
                "EVIDENCE_REMOVE noop product_id=%s ingredient=%s evidence_id=%s",
                product.id, ingredient_name, evidence_id,
            )
            return False
        ing.evidence = [e for e in ing.evidence if e.id != evidence_id]
        self._previews.release(record.preview_handle)
        record.preview_handle = None
        apply_rollup(product)
        logger.info(
            "EVIDENCE_REMOVE product_id=%s ingredient=%s evidence_id=%s remaining=%d status=%s overall=%s",
            product.id, ingredient_name, evidence_id, len(ing.evidence),
            ing.status.value, product.overall_status.value,
        )
        return True

    def release_product(self, product: ProductAssessment) -> None:
        for record in product.iter_evidence():
            self._previews.release(record.preview_handle)
            record.preview_handle = None
