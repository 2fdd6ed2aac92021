"""
Pipeline handoff: assessment verdict (+ optional client reference) -> PipelineEntry.
Stage is recomputed from current ingredient state at submission time.
Policy check (client reference) happens before anything is built.
"""
import logging
from typing import List, Optional, Sequence

from halalcheck.errors import ClientRequired
from halalcheck.evaluation.rollup import rollup
from halalcheck.models.assessment import IngredientStatus, ProductAssessment, WorkflowStage
from halalcheck.models.pipeline import PipelineEntry, Priority

logger = logging.getLogger(__name__)

_HIGH_PRIORITY_STATUSES = (IngredientStatus.PROHIBITED, IngredientStatus.REQUIRES_REVIEW)


def _check_client(client_reference: Optional[str], require_client: bool) -> Optional[str]:
    ref = (client_reference or "").strip() or None
    if require_client and ref is None:
        logger.warning("PIPELINE_HANDOFF blocked reason=client_required")
        raise ClientRequired()
    return ref


def _priority(statuses: Sequence[IngredientStatus]) -> Priority:
    return Priority.HIGH if any(s in _HIGH_PRIORITY_STATUSES for s in statuses) else Priority.NORMAL


def build_entry(
    product: ProductAssessment,
    client_reference: Optional[str] = None,
    require_client: bool = False,
) -> PipelineEntry:
    ref = _check_client(client_reference, require_client)
    result = rollup(product.ingredients)
    entry = PipelineEntry(
        source_assessment_ids=(product.id,),
        stage=result.stage,
        priority=_priority(result.statuses),
        product_name=product.product_name,
        client_reference=ref,
        notes=f"Automatic analysis: {result.overall_status.value}",
    )
    logger.info(
        "PIPELINE_HANDOFF product_id=%s stage=%s priority=%s client=%s",
        product.id, entry.stage.value, entry.priority.value, bool(ref),
    )
    return entry


def build_batch_entries(
    products: Sequence[ProductAssessment],
    client_reference: Optional[str] = None,
    require_client: bool = False,
    combined: bool = False,
) -> List[PipelineEntry]:
    """
    combined=True  -> one entry covering every product; APPROVED only if all products stage APPROVED.
    combined=False -> one entry per product.
    """
    ref = _check_client(client_reference, require_client)
    if not combined:
        return [build_entry(p, ref, require_client=False) for p in products]
    if not products:
        return []

    results = [rollup(p.ingredients) for p in products]
    all_approved = all(r.stage == WorkflowStage.APPROVED for r in results)
    statuses = [s for r in results for s in r.statuses]
    approved = sum(1 for r in results if r.overall_status == IngredientStatus.APPROVED)
    prohibited = sum(1 for r in results if r.overall_status == IngredientStatus.PROHIBITED)
    entry = PipelineEntry(
        source_assessment_ids=tuple(p.id for p in products),
        stage=WorkflowStage.APPROVED if all_approved else WorkflowStage.NEEDS_REVIEW,
        priority=_priority(statuses),
        product_name=f"Bulk analysis ({len(products)} products)",
        client_reference=ref,
        notes=f"Bulk analysis of {len(products)} products. {approved} approved, {prohibited} prohibited.",
    )
    logger.info(
        "PIPELINE_HANDOFF batch products=%d stage=%s priority=%s",
        len(products), entry.stage.value, entry.priority.value,
    )
    return [entry]
