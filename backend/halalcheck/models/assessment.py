"""
Product and ingredient assessments. Single format for single-product and batch analysis.
Derived fields (status, overall_status, stage, counts) are written only by
halalcheck.evaluation.rollup.apply_rollup.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class IngredientStatus(str, Enum):
    APPROVED = "APPROVED"
    PROHIBITED = "PROHIBITED"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"


class RiskBand(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class WorkflowStage(str, Enum):
    APPROVED = "APPROVED"
    NEEDS_REVIEW = "NEEDS_REVIEW"


class EvidenceType(str, Enum):
    CERTIFICATE = "CERTIFICATE"
    SUPPLIER_LETTER = "SUPPLIER_LETTER"
    LAB_REPORT = "LAB_REPORT"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Optional[str]) -> "EvidenceType":
        key = (value or "").strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER


@dataclass
class EvidenceRecord:
    id: str
    filename: str
    declared_type: EvidenceType
    captured_at: int  # epoch ms
    byte_size: int
    mime_type: str
    # Local preview file; never persisted
    preview_handle: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "declared_type": self.declared_type.value,
            "captured_at": self.captured_at,
            "byte_size": self.byte_size,
            "mime_type": self.mime_type,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "EvidenceRecord":
        return cls(
            id=str(d["id"]),
            filename=str(d.get("filename", "")),
            declared_type=EvidenceType.parse(d.get("declared_type")),
            captured_at=int(d.get("captured_at", 0)),
            byte_size=int(d.get("byte_size", 0)),
            mime_type=str(d.get("mime_type", "")),
        )


@dataclass
class IngredientAssessment:
    name: str
    classifier_status: IngredientStatus
    risk_band: RiskBand
    confidence: float
    category: str = "General"
    supplemental: dict[str, Any] = field(default_factory=dict)
    evidence: list[EvidenceRecord] = field(default_factory=list)
    # Effective status after evidence is taken into account
    status: IngredientStatus = IngredientStatus.REQUIRES_REVIEW

    @property
    def is_documented(self) -> bool:
        return len(self.evidence) > 0

    def find_evidence(self, evidence_id: str) -> Optional[EvidenceRecord]:
        for rec in self.evidence:
            if rec.id == evidence_id:
                return rec
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "classifier_status": self.classifier_status.value,
            "status": self.status.value,
            "risk_band": self.risk_band.value,
            "confidence": self.confidence,
            "category": self.category,
            "supplemental": dict(self.supplemental),
            "evidence": [e.to_dict() for e in self.evidence],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "IngredientAssessment":
        classifier_status = IngredientStatus(d["classifier_status"])
        return cls(
            name=str(d["name"]),
            classifier_status=classifier_status,
            risk_band=RiskBand(d.get("risk_band", RiskBand.HIGH.value)),
            confidence=float(d.get("confidence", 0)),
            category=d.get("category") or "General",
            supplemental=dict(d.get("supplemental") or {}),
            evidence=[EvidenceRecord.from_dict(e) for e in d.get("evidence", [])],
            status=IngredientStatus(d.get("status", classifier_status.value)),
        )


@dataclass
class AggregateCounts:
    total: int = 0
    approved: int = 0
    prohibited: int = 0
    requires_review: int = 0
    documented: int = 0  # review-labelled ingredients with evidence attached

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "approved": self.approved,
            "prohibited": self.prohibited,
            "requires_review": self.requires_review,
            "documented": self.documented,
        }


@dataclass
class ProductAssessment:
    id: str
    product_name: str
    ingredients: list[IngredientAssessment] = field(default_factory=list)
    created_at: int = 0  # epoch ms
    warnings: list[str] = field(default_factory=list)
    overall_status: IngredientStatus = IngredientStatus.REQUIRES_REVIEW
    stage: WorkflowStage = WorkflowStage.NEEDS_REVIEW
    counts: AggregateCounts = field(default_factory=AggregateCounts)

    def get_ingredient(self, name: str) -> Optional[IngredientAssessment]:
        for ing in self.ingredients:
            if ing.name == name:
                return ing
        return None

    def iter_evidence(self):
        for ing in self.ingredients:
            yield from ing.evidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "ingredients": [i.to_dict() for i in self.ingredients],
            "created_at": self.created_at,
            "warnings": list(self.warnings),
            "overall_status": self.overall_status.value,
            "stage": self.stage.value,
            "counts": self.counts.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ProductAssessment":
        """Load persisted shape. Derived fields are recomputed by the caller via apply_rollup."""
        return cls(
            id=str(d["id"]),
            product_name=str(d.get("product_name", "")),
            ingredients=[IngredientAssessment.from_dict(i) for i in d.get("ingredients", [])],
            created_at=int(d.get("created_at", 0)),
            warnings=list(d.get("warnings") or []),
        )
