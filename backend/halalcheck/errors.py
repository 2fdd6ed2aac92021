"""
Error taxonomy for the verdict engine.

ValidationError  - per-item / per-action problems; recovered and surfaced as warnings.
TransientError   - classifier or pipeline store unreachable; caller may retry.
StateError       - cache unreadable or stale; always handled as a cold start.
PolicyError      - a deployment rule blocks a single action.
"""


class HalalCheckError(Exception):
    """Base class for all engine errors."""


class ValidationError(HalalCheckError):
    pass


class MalformedRecord(ValidationError):
    """Classifier record that cannot become an ingredient (e.g. no name)."""

    def __init__(self, reason: str, record=None):
        super().__init__(reason)
        self.reason = reason
        self.record = record


class FileRejected(ValidationError):
    """Evidence upload failed size or type checks."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class UnknownIngredient(ValidationError):
    def __init__(self, assessment_id: str, ingredient_name: str):
        super().__init__(f"ingredient {ingredient_name!r} not found in assessment {assessment_id}")
        self.assessment_id = assessment_id
        self.ingredient_name = ingredient_name


class TransientError(HalalCheckError):
    pass


class ClassifierUnavailable(TransientError):
    pass


class PipelineUnavailable(TransientError):
    pass


class StateError(HalalCheckError):
    pass


class CacheCorrupt(StateError):
    pass


class StaleCache(StateError):
    pass


class PolicyError(HalalCheckError):
    pass


class ClientRequired(PolicyError):
    def __init__(self):
        super().__init__("a client reference is required before submitting to the pipeline")


class AssessmentNotFound(HalalCheckError):
    def __init__(self, assessment_id: str):
        super().__init__(f"assessment {assessment_id} not found in session")
        self.assessment_id = assessment_id
