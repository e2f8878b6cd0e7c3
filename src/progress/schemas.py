"""Pydantic schemas for enrollments and learner progress.

Request and response models for:
- Enrollment creation
- Lecture progress and quiz attempts
- Course status (per-lecture statuses, percentage, resume point)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.courses.models import AssessmentKind

from .engine import LectureStatus
from .models import Enrollment, LectureProgress, QuizAttempt


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll a learner in a course."""

    learner_id: UUID = Field(..., description="Learner UUID")
    course_id: UUID = Field(..., description="Course UUID")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    learner_id: UUID
    course_id: UUID
    enrolled_at: datetime

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        return cls(
            learner_id=entity.learner_id,
            course_id=entity.course_id,
            enrolled_at=entity.enrolled_at,
        )


# ==============================================================================
# Progress Schemas
# ==============================================================================


class LectureProgressResponse(BaseModel):
    """Progress of one lecture."""

    lecture_index: int
    content_viewed: bool
    time_spent: float
    completed: bool
    quiz_passed: bool
    last_score: int | None = None
    best_score: int | None = None
    attempts: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: LectureProgress) -> "LectureProgressResponse":
        return cls(
            lecture_index=entity.lecture_index,
            content_viewed=entity.content_viewed,
            time_spent=entity.time_spent,
            completed=entity.completed,
            quiz_passed=entity.quiz_passed,
            last_score=entity.last_score,
            best_score=entity.best_score,
            attempts=entity.attempts,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
        )


class LectureStatusItem(BaseModel):
    index: int
    status: LectureStatus


class CourseStatusResponse(BaseModel):
    """Per-lecture statuses for one learner."""

    course_id: UUID
    learner_id: UUID
    enrolled: bool
    progress_percent: int = Field(description="0-100, completed lectures only")
    resume_index: int
    lectures: list[LectureStatusItem]


class QuizAttemptResponse(BaseModel):
    """Scored submission."""

    attempt_id: UUID
    lecture_index: int
    score: int
    correct_count: int
    total_questions: int
    passed: bool
    assessment_kind: AssessmentKind
    submitted_at: datetime

    @classmethod
    def from_entity(cls, entity: QuizAttempt) -> "QuizAttemptResponse":
        return cls(
            attempt_id=entity.attempt_id,
            lecture_index=entity.lecture_index,
            score=entity.score,
            correct_count=entity.correct_count,
            total_questions=entity.total_questions,
            passed=entity.passed,
            assessment_kind=entity.assessment_kind,
            submitted_at=entity.submitted_at,
        )


class AttemptListResponse(BaseModel):
    attempts: list[QuizAttemptResponse]
    total: int
