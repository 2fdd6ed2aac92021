"""
Submission request for the external certification pipeline store.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from halalcheck.models.assessment import WorkflowStage


class Priority(str, Enum):
    NORMAL = "NORMAL"
    HIGH = "HIGH"


# Wire values of the pipeline store
_STAGE_WIRE = {WorkflowStage.APPROVED: "Approved", WorkflowStage.NEEDS_REVIEW: "NeedsReview"}
_PRIORITY_WIRE = {Priority.NORMAL: "Normal", Priority.HIGH: "High"}


@dataclass(frozen=True)
class PipelineEntry:
    source_assessment_ids: tuple[str, ...]
    stage: WorkflowStage
    priority: Priority
    product_name: str = ""
    client_reference: Optional[str] = None
    notes: str = ""

    @property
    def source_assessment_id(self) -> str:
        return self.source_assessment_ids[0]

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sourceAssessmentId": self.source_assessment_id,
            "stage": _STAGE_WIRE[self.stage],
            "priority": _PRIORITY_WIRE[self.priority],
            "productName": self.product_name,
            "notes": self.notes,
        }
        if len(self.source_assessment_ids) > 1:
            payload["sourceAssessmentIds"] = list(self.source_assessment_ids)
        if self.client_reference:
            payload["clientReference"] = self.client_reference
        return payload
