"""
Analysis session: classifier -> normalizer -> rollup -> session cache, evidence
mutations, and pipeline submission. One instance per user session.

Every mutation of a ProductAssessment runs under that assessment's lock and ends
in apply_rollup + cache.replace, so overall_status never drifts from ingredient state.
A classification is built completely before it touches the cache; a failed or
cancelled classifier call commits nothing.
"""
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from halalcheck.config import get_evidence_preview_dir, get_require_client_reference
from halalcheck.errors import AssessmentNotFound
from halalcheck.evaluation.rollup import apply_rollup
from halalcheck.evidence.ledger import EvidenceUpload, VerificationLedger
from halalcheck.evidence.preview import PreviewStore
from halalcheck.external_apis.classifier import ClassifierClient
from halalcheck.models.assessment import EvidenceRecord, ProductAssessment
from halalcheck.normalization.classification import normalize_batch
from halalcheck.pipeline.handoff import build_batch_entries, build_entry
from halalcheck.pipeline.store import PipelineStore, get_pipeline_store
from halalcheck.session.cache import SessionCache, SessionState

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class KeyedLocks:
    """One lock per key; serializes mutations of the same assessment."""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def discard(self, keys: Iterable[str]) -> None:
        with self._guard:
            for key in keys:
                self._locks.pop(key, None)


def build_assessment(
    product_name: str,
    records: Sequence[Any],
    clock: Callable[[], int] = _now_ms,
) -> ProductAssessment:
    """Pure: raw classifier records -> fully rolled-up ProductAssessment (not yet cached)."""
    ingredients, warnings = normalize_batch(records)
    product = ProductAssessment(
        id=uuid.uuid4().hex,
        product_name=(product_name or "").strip() or "Unnamed product",
        ingredients=ingredients,
        created_at=clock(),
        warnings=warnings,
    )
    return apply_rollup(product)


class AnalysisSession:

    def __init__(
        self,
        cache: Optional[SessionCache] = None,
        classifier: Optional[ClassifierClient] = None,
        previews: Optional[PreviewStore] = None,
        pipeline_store: Optional[PipelineStore] = None,
        require_client: Optional[bool] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self._clock = clock
        self.cache = cache or SessionCache(clock=clock)
        self.classifier = classifier or ClassifierClient()
        self.previews = previews or PreviewStore(get_evidence_preview_dir())
        self.ledger = VerificationLedger(self.previews, clock=clock)
        self.pipeline_store = pipeline_store or get_pipeline_store()
        self.require_client = get_require_client_reference() if require_client is None else require_client
        self._locks = KeyedLocks()
        self.cache.on_expire = self._release

    # --- lifecycle ---

    def start(self) -> SessionState:
        return self.cache.load()

    def state(self) -> SessionState:
        return self.cache.snapshot()

    def _release(self, dropped: List[ProductAssessment]) -> None:
        for product in dropped:
            self.ledger.release_product(product)
        self._locks.discard(p.id for p in dropped)

    def clear(self) -> None:
        self._release(self.cache.clear())

    def close(self) -> None:
        """Session end: release every preview handle."""
        released = self.previews.release_all()
        logger.info("SESSION_CLOSE previews_released=%d", released)

    # --- analysis ---

    def analyze(self, product_name: str, ingredients_text: str) -> ProductAssessment:
        records = self.classifier.classify(product_name, ingredients_text)
        product = build_assessment(product_name, records, self._clock)
        self.cache.append_single(product)
        logger.info(
            "ANALYZE product_id=%s name=%s overall=%s stage=%s warnings=%d",
            product.id, product.product_name[:60], product.overall_status.value,
            product.stage.value, len(product.warnings),
        )
        return product

    def analyze_batch(self, products: Sequence[Tuple[str, str]]) -> List[ProductAssessment]:
        """All-or-nothing: any classifier failure aborts before the cache is touched."""
        built: List[ProductAssessment] = []
        for name, text in products:
            records = self.classifier.classify(name, text)
            built.append(build_assessment(name, records, self._clock))
        if built:
            self.cache.merge_batch(built)
        logger.info("ANALYZE_BATCH products=%d", len(built))
        return built

    # --- evidence ---

    def _require(self, assessment_id: str) -> ProductAssessment:
        product = self.cache.find(assessment_id)
        if product is None:
            raise AssessmentNotFound(assessment_id)
        return product

    def attach_evidence(
        self, assessment_id: str, ingredient_name: str, upload: EvidenceUpload,
    ) -> Tuple[EvidenceRecord, ProductAssessment]:
        with self._locks.hold(assessment_id):
            product = self._require(assessment_id)
            record = self.ledger.attach(product, ingredient_name, upload)
            self.cache.replace(product)
            return record, product

    def remove_evidence(
        self, assessment_id: str, ingredient_name: str, evidence_id: str,
    ) -> Tuple[bool, ProductAssessment]:
        with self._locks.hold(assessment_id):
            product = self._require(assessment_id)
            removed = self.ledger.remove(product, ingredient_name, evidence_id)
            if removed:
                self.cache.replace(product)
            return removed, product

    # --- pipeline ---

    def submit(self, assessment_id: str, client_reference: Optional[str] = None) -> Dict[str, Any]:
        with self._locks.hold(assessment_id):
            product = self._require(assessment_id)
            entry = build_entry(product, client_reference, require_client=self.require_client)
        return self.pipeline_store.submit(entry)

    def submit_batch(self, client_reference: Optional[str] = None, combined: bool = False) -> List[Dict[str, Any]]:
        products = list(self.cache.snapshot().batch_history)
        entries = build_batch_entries(
            products, client_reference, require_client=self.require_client, combined=combined,
        )
        return [self.pipeline_store.submit(e) for e in entries]
