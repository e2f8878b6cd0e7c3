"""Pydantic schemas for the learner-facing gate endpoints."""

from uuid import UUID

from pydantic import BaseModel, Field

from src.courses.models import AssessmentKind
from src.progress.engine import LectureStatus
from src.progress.schemas import (
    CourseStatusResponse,
    LectureProgressResponse,
    LectureStatusItem,
)

from .results import DenialReason
from .service import AssessmentInfo, CourseStatus


class LectureRef(BaseModel):
    course_id: UUID
    learner_id: UUID
    lecture_index: int = Field(..., ge=0)


class RecordViewRequest(LectureRef):
    """Content view event."""

    time_spent: float = Field(0.0, ge=0, description="Seconds spent since last event")
    fully_viewed: bool = Field(False, description="Content watched/read to the end")


class SubmitRequest(LectureRef):
    """Answers in question order; unanswered questions may be null."""

    answers: list[str | None] = Field(default_factory=list)


class AccessResponse(BaseModel):
    """Access granted."""

    allowed: bool = True
    lecture_index: int
    status: LectureStatus
    progress: LectureProgressResponse | None = None


class DeniedResponse(BaseModel):
    """403 payload for a denial."""

    error: bool = True
    reason: DenialReason


class AssessmentInfoResponse(BaseModel):
    lecture_index: int
    kind: AssessmentKind
    passing_score: int
    question_count: int
    gates_next_lecture: bool
    attempts: int
    best_score: int | None = None
    quiz_passed: bool
    exam_id: str | None = None
    max_attempts: int | None = None
    time_limit: int | None = Field(None, description="Minutes")
    attempts_used: int | None = None

    @classmethod
    def from_info(cls, info: AssessmentInfo) -> "AssessmentInfoResponse":
        return cls(**info.__dict__)


def course_status_response(status: CourseStatus) -> CourseStatusResponse:
    return CourseStatusResponse(
        course_id=status.course_id,
        learner_id=status.learner_id,
        enrolled=status.enrolled,
        progress_percent=status.progress_percent,
        resume_index=status.resume_index,
        lectures=[
            LectureStatusItem(index=index, status=lecture_status)
            for index, lecture_status in enumerate(status.statuses)
        ],
    )
