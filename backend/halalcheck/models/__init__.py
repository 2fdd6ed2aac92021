from .assessment import (
    AggregateCounts,
    EvidenceRecord,
    EvidenceType,
    IngredientAssessment,
    IngredientStatus,
    ProductAssessment,
    RiskBand,
    WorkflowStage,
)
from .pipeline import PipelineEntry, Priority

__all__ = [
    "AggregateCounts",
    "EvidenceRecord",
    "EvidenceType",
    "IngredientAssessment",
    "IngredientStatus",
    "ProductAssessment",
    "RiskBand",
    "WorkflowStage",
    "PipelineEntry",
    "Priority",
]
