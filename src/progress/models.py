"""Database models for learner progress.

Cassandra table definitions for:
- Enrollments: who is enrolled in which course
- Lecture progress: one row per (learner, course, lecture index)
- Quiz attempts: append-only attempt history

Progress rows are keyed by lecture index, never by lecture id. ``completed``
and ``quiz_passed`` only ever move from false to true; every write is a
lightweight transaction guarded by ``version``.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import orjson
from cassandra.util import uuid_from_time

from src.courses.models import AssessmentKind, ensure_utc_aware


if TYPE_CHECKING:
    from src.assessments.evaluator import EvaluationResult


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition by course for "who is enrolled here" queries
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    learner_id UUID,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (course_id, learner_id)
)
"""

# Partition key: (learner_id, course_id) so a whole course map is one read
LECTURE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lecture_progress (
    learner_id UUID,
    course_id UUID,
    lecture_index INT,
    content_viewed BOOLEAN,
    time_spent DOUBLE,
    completed BOOLEAN,
    quiz_passed BOOLEAN,
    last_score INT,
    best_score INT,
    attempts INT,
    version INT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((learner_id, course_id), lecture_index)
) WITH CLUSTERING ORDER BY (lecture_index ASC)
"""

QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    learner_id UUID,
    course_id UUID,
    lecture_index INT,
    attempt_id TIMEUUID,
    submitted_at TIMESTAMP,
    answers TEXT,
    score INT,
    correct_count INT,
    total_questions INT,
    passed BOOLEAN,
    assessment_kind TEXT,
    PRIMARY KEY ((learner_id, course_id), lecture_index, attempt_id)
) WITH CLUSTERING ORDER BY (lecture_index ASC, attempt_id DESC)
"""

# All CQL statements for table setup
PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    LECTURE_PROGRESS_TABLE_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class LectureProgress:
    """Progress of one learner on one lecture.

    Instances are treated as values: the ``with_*`` methods return a new
    record and never mutate the receiver.

    Attributes:
        learner_id: Learner UUID
        course_id: Course UUID
        lecture_index: Lecture position in the course
        content_viewed: Content was opened at least once
        time_spent: Accumulated seconds on the content
        completed: Content done (monotonic)
        quiz_passed: Assessment passed (monotonic)
        last_score: Score of the latest attempt
        best_score: Highest score over all attempts
        attempts: Number of scored submissions
        version: Optimistic concurrency token (0 = never persisted)
        started_at: First view timestamp
        completed_at: When ``completed`` first became true
        updated_at: Last write timestamp
    """

    def __init__(
        self,
        learner_id: UUID,
        course_id: UUID,
        lecture_index: int,
        content_viewed: bool = False,
        time_spent: float = 0.0,
        completed: bool = False,
        quiz_passed: bool = False,
        last_score: int | None = None,
        best_score: int | None = None,
        attempts: int = 0,
        version: int = 0,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.learner_id = learner_id
        self.course_id = course_id
        self.lecture_index = lecture_index
        self.content_viewed = content_viewed
        self.time_spent = time_spent
        self.completed = completed
        self.quiz_passed = quiz_passed
        self.last_score = last_score
        self.best_score = best_score
        self.attempts = attempts
        self.version = version
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def empty(cls, learner_id: UUID, course_id: UUID, lecture_index: int) -> "LectureProgress":
        """Progress for a lecture never touched (all false / zero)."""
        return cls(learner_id=learner_id, course_id=course_id, lecture_index=lecture_index)

    @property
    def is_persisted(self) -> bool:
        return self.version > 0

    def _replace(self, **changes: Any) -> "LectureProgress":
        return LectureProgress(**{**self.to_dict(), **changes})

    def with_view(self, time_spent: float = 0.0, fully_viewed: bool = False) -> "LectureProgress":
        """Record a content view; a full view marks the lecture completed."""
        now = datetime.now(UTC)
        completed = self.completed or fully_viewed
        return self._replace(
            content_viewed=True,
            time_spent=self.time_spent + max(time_spent, 0.0),
            completed=completed,
            started_at=self.started_at or now,
            completed_at=self.completed_at or (now if completed else None),
            updated_at=now,
        )

    def with_attempt(self, result: "EvaluationResult") -> "LectureProgress":
        """Record a scored submission.

        ``quiz_passed`` stays true after a lower-scoring retake.
        """
        best = result.score if self.best_score is None else max(self.best_score, result.score)
        return self._replace(
            quiz_passed=self.quiz_passed or result.passed,
            last_score=result.score,
            best_score=best,
            attempts=self.attempts + 1,
            updated_at=datetime.now(UTC),
        )

    def regresses(self, previous: "LectureProgress") -> bool:
        """Whether replacing ``previous`` with this record resets a flag."""
        return (previous.completed and not self.completed) or (
            previous.quiz_passed and not self.quiz_passed
        )

    @classmethod
    def from_row(cls, row: Any) -> "LectureProgress":
        """Create LectureProgress instance from Cassandra row."""
        return cls(
            learner_id=row.learner_id,
            course_id=row.course_id,
            lecture_index=row.lecture_index,
            content_viewed=bool(row.content_viewed),
            time_spent=row.time_spent or 0.0,
            completed=bool(row.completed),
            quiz_passed=bool(row.quiz_passed),
            last_score=row.last_score,
            best_score=row.best_score,
            attempts=row.attempts or 0,
            version=row.version or 0,
            started_at=row.started_at,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "learner_id": self.learner_id,
            "course_id": self.course_id,
            "lecture_index": self.lecture_index,
            "content_viewed": self.content_viewed,
            "time_spent": self.time_spent,
            "completed": self.completed,
            "quiz_passed": self.quiz_passed,
            "last_score": self.last_score,
            "best_score": self.best_score,
            "attempts": self.attempts,
            "version": self.version,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<LectureProgress learner={self.learner_id} lecture={self.lecture_index} "
            f"completed={self.completed} quiz_passed={self.quiz_passed} v{self.version}>"
        )


class Enrollment:
    """Course enrollment with the learner's per-lecture progress map.

    Attributes:
        course_id: Course UUID
        learner_id: Learner UUID
        enrolled_at: Enrollment timestamp
        progress: Lecture index -> progress; absent entries mean untouched
    """

    def __init__(
        self,
        course_id: UUID,
        learner_id: UUID,
        enrolled_at: datetime | None = None,
        progress: dict[int, LectureProgress] | None = None,
    ):
        self.course_id = course_id
        self.learner_id = learner_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.progress = progress or {}

    def progress_for(self, lecture_index: int) -> LectureProgress:
        """Stored progress for a lecture, or an empty record."""
        return self.progress.get(lecture_index) or LectureProgress.empty(
            self.learner_id, self.course_id, lecture_index
        )

    @classmethod
    def from_row(cls, row: Any, progress_rows: list[Any] | None = None) -> "Enrollment":
        """Create Enrollment instance from Cassandra rows."""
        progress = {}
        for progress_row in progress_rows or []:
            record = LectureProgress.from_row(progress_row)
            progress[record.lecture_index] = record
        return cls(
            course_id=row.course_id,
            learner_id=row.learner_id,
            enrolled_at=row.enrolled_at,
            progress=progress,
        )

    def __repr__(self) -> str:
        return (
            f"<Enrollment learner={self.learner_id} course={self.course_id} "
            f"lectures_touched={len(self.progress)}>"
        )


class QuizAttempt:
    """Immutable record of one scored submission."""

    def __init__(
        self,
        learner_id: UUID,
        course_id: UUID,
        lecture_index: int,
        answers: list[str | None],
        score: int,
        correct_count: int,
        total_questions: int,
        passed: bool,
        assessment_kind: AssessmentKind = AssessmentKind.INLINE,
        submitted_at: datetime | None = None,
        attempt_id: UUID | None = None,
    ):
        self.learner_id = learner_id
        self.course_id = course_id
        self.lecture_index = lecture_index
        self.answers = answers
        self.score = score
        self.correct_count = correct_count
        self.total_questions = total_questions
        self.passed = passed
        self.assessment_kind = assessment_kind
        self.submitted_at = ensure_utc_aware(submitted_at) or datetime.now(UTC)
        self.attempt_id = attempt_id or uuid_from_time(self.submitted_at)

    @classmethod
    def from_result(
        cls,
        learner_id: UUID,
        course_id: UUID,
        lecture_index: int,
        answers: list[str | None],
        result: "EvaluationResult",
    ) -> "QuizAttempt":
        return cls(
            learner_id=learner_id,
            course_id=course_id,
            lecture_index=lecture_index,
            answers=answers,
            score=result.score,
            correct_count=result.correct_count,
            total_questions=result.total_questions,
            passed=result.passed,
            assessment_kind=result.assessment_kind,
        )

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt instance from Cassandra row."""
        return cls(
            learner_id=row.learner_id,
            course_id=row.course_id,
            lecture_index=row.lecture_index,
            answers=orjson.loads(row.answers) if row.answers else [],
            score=row.score or 0,
            correct_count=row.correct_count or 0,
            total_questions=row.total_questions or 0,
            passed=bool(row.passed),
            assessment_kind=AssessmentKind(row.assessment_kind or AssessmentKind.INLINE.value),
            submitted_at=row.submitted_at,
            attempt_id=row.attempt_id,
        )

    def to_row(self) -> list[Any]:
        """Values for the attempt insert statement, in column order."""
        return [
            self.learner_id,
            self.course_id,
            self.lecture_index,
            self.attempt_id,
            self.submitted_at,
            orjson.dumps(self.answers).decode(),
            self.score,
            self.correct_count,
            self.total_questions,
            self.passed,
            self.assessment_kind.value,
        ]

    def __repr__(self) -> str:
        return (
            f"<QuizAttempt learner={self.learner_id} lecture={self.lecture_index} "
            f"{self.score}% passed={self.passed}>"
        )
