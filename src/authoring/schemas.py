"""Pydantic schemas for authoring-time validation."""

from pydantic import BaseModel, Field

from src.courses.schemas import LecturePayload, QuestionPayload

from .validators import ValidationResult


class ValidateQuizRequest(BaseModel):
    """Inline quiz to check before saving."""

    questions: list[QuestionPayload] = Field(default_factory=list)
    enabled: bool = Field(True, description="Enforce the minimum question count")


class ValidateExamAssignmentRequest(BaseModel):
    """Assessment to attach to a lecture.

    ``lecture`` is the lecture as currently stored; ``assignment`` carries
    either ``inline_quiz`` or ``formal_exam_id``.
    """

    lecture: LecturePayload
    assignment: LecturePayload
    lecture_index: int = Field(0, ge=0)


class ValidationResponse(BaseModel):
    """``ok`` or the first error found."""

    ok: bool
    error: str | None = None
    index: int | None = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResponse":
        return cls(ok=result.valid, error=result.error, index=result.index)
