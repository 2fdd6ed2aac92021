"""
Deterministic status rollup. Single path for initial verdicts and evidence recomputes.

1) any PROHIBITED ingredient -> PROHIBITED (absorbing)
2) any REQUIRES_REVIEW ingredient without evidence -> REQUIRES_REVIEW
3) otherwise -> APPROVED
Empty ingredient list -> REQUIRES_REVIEW (nothing to certify is never an approval).
Result is independent of ingredient order.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from halalcheck.models.assessment import (
    AggregateCounts,
    IngredientAssessment,
    IngredientStatus,
    ProductAssessment,
    WorkflowStage,
)

logger = logging.getLogger(__name__)


def evidence_satisfies_review(ingredient: IngredientAssessment) -> bool:
    """
    Review rule: one attached evidence record is enough. Content is never inspected;
    a reviewer sign-off requirement would replace this predicate.
    """
    return len(ingredient.evidence) > 0


ReviewPredicate = Callable[[IngredientAssessment], bool]


def effective_status(
    ingredient: IngredientAssessment,
    satisfies: ReviewPredicate = evidence_satisfies_review,
) -> IngredientStatus:
    if ingredient.classifier_status == IngredientStatus.REQUIRES_REVIEW and satisfies(ingredient):
        return IngredientStatus.APPROVED
    return ingredient.classifier_status


@dataclass
class RollupResult:
    statuses: List[IngredientStatus] = field(default_factory=list)  # parallel to input
    overall_status: IngredientStatus = IngredientStatus.REQUIRES_REVIEW
    stage: WorkflowStage = WorkflowStage.NEEDS_REVIEW
    counts: AggregateCounts = field(default_factory=AggregateCounts)


def rollup(
    ingredients: Sequence[IngredientAssessment],
    satisfies: ReviewPredicate = evidence_satisfies_review,
) -> RollupResult:
    """Pure: ingredient labels + evidence -> product verdict and workflow stage."""
    statuses = [effective_status(ing, satisfies) for ing in ingredients]
    review_labelled = [ing for ing in ingredients if ing.classifier_status == IngredientStatus.REQUIRES_REVIEW]
    documented = [ing for ing in review_labelled if satisfies(ing)]
    undocumented = len(review_labelled) - len(documented)
    has_prohibited = IngredientStatus.PROHIBITED in statuses

    counts = AggregateCounts(
        total=len(statuses),
        approved=statuses.count(IngredientStatus.APPROVED),
        prohibited=statuses.count(IngredientStatus.PROHIBITED),
        requires_review=statuses.count(IngredientStatus.REQUIRES_REVIEW),
        documented=len(documented),
    )

    if not ingredients:
        overall = IngredientStatus.REQUIRES_REVIEW
    elif has_prohibited:
        overall = IngredientStatus.PROHIBITED
    elif undocumented:
        overall = IngredientStatus.REQUIRES_REVIEW
    else:
        overall = IngredientStatus.APPROVED

    # Prohibited products are routed through review, never auto-approved
    if ingredients and not undocumented and not has_prohibited:
        stage = WorkflowStage.APPROVED
    else:
        stage = WorkflowStage.NEEDS_REVIEW

    return RollupResult(statuses=statuses, overall_status=overall, stage=stage, counts=counts)


def apply_rollup(
    product: ProductAssessment,
    satisfies: ReviewPredicate = evidence_satisfies_review,
) -> ProductAssessment:
    """Write derived fields onto the product. The only writer of status/overall_status/stage/counts."""
    result = rollup(product.ingredients, satisfies)
    for ing, status in zip(product.ingredients, result.statuses):
        ing.status = status
    previous = product.overall_status
    product.overall_status = result.overall_status
    product.stage = result.stage
    product.counts = result.counts
    logger.info(
        "ROLLUP product_id=%s overall=%s stage=%s previous=%s counts=%s",
        product.id, result.overall_status.value, result.stage.value,
        previous.value, result.counts.to_dict(),
    )
    return product
