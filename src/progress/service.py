"""Enrollment Store service layer.

Business logic for:
- Learner enrollment (create once, never deleted)
- Loading an enrollment with its per-lecture progress map
- Compare-and-swap progress writes that refuse regressions
- Quiz attempt history
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.exceptions import EngineError, ProgressRegressionError

from .models import Enrollment, LectureProgress, QuizAttempt


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

# Attempts returned by default from the history endpoint
DEFAULT_ATTEMPT_LIMIT = 50


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AlreadyEnrolledError(EngineError):
    """Learner already enrolled in the course."""

    def __init__(self, message: str = "Learner already enrolled in course"):
        super().__init__(message, "already_enrolled")


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for enrollments and learner progress."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND learner_id = ?
        """)

        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, learner_id, enrolled_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        # Lecture progress
        self._get_course_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lecture_progress
            WHERE learner_id = ? AND course_id = ?
        """)

        self._get_lecture_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lecture_progress
            WHERE learner_id = ? AND course_id = ? AND lecture_index = ?
        """)

        self._insert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lecture_progress
            (learner_id, course_id, lecture_index, content_viewed, time_spent,
             completed, quiz_passed, last_score, best_score, attempts, version,
             started_at, completed_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.lecture_progress
            SET content_viewed = ?, time_spent = ?, completed = ?, quiz_passed = ?,
                last_score = ?, best_score = ?, attempts = ?, version = ?,
                started_at = ?, completed_at = ?, updated_at = ?
            WHERE learner_id = ? AND course_id = ? AND lecture_index = ?
            IF version = ?
        """)

        # Attempts
        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (learner_id, course_id, lecture_index, attempt_id, submitted_at, answers,
             score, correct_count, total_questions, passed, assessment_kind)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._list_attempts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts
            WHERE learner_id = ? AND course_id = ? AND lecture_index = ?
            LIMIT ?
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll_learner(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll a learner in a course.

        Raises:
            AlreadyEnrolledError: If an enrollment already exists
        """
        enrollment = Enrollment(
            course_id=course_id,
            learner_id=learner_id,
            enrolled_at=datetime.now(UTC),
        )
        result = await self.session.aexecute(
            self._insert_enrollment,
            [course_id, learner_id, enrollment.enrolled_at],
        )
        if not result.was_applied:
            raise AlreadyEnrolledError

        logger.info(
            "learner_enrolled",
            learner_id=str(learner_id),
            course_id=str(course_id),
        )
        return enrollment

    async def get_enrollment(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get an enrollment with its full progress map, or None."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, learner_id])
        row = result.one()
        if not row:
            return None

        progress_rows = await self.session.aexecute(
            self._get_course_progress, [learner_id, course_id]
        )
        return Enrollment.from_row(row, list(progress_rows))

    # ==========================================================================
    # Progress Operations
    # ==========================================================================

    async def get_lecture_progress(
        self, learner_id: UUID, course_id: UUID, lecture_index: int
    ) -> LectureProgress:
        """Current progress of one lecture; empty when never written."""
        result = await self.session.aexecute(
            self._get_lecture_progress, [learner_id, course_id, lecture_index]
        )
        row = result.one()
        if not row:
            return LectureProgress.empty(learner_id, course_id, lecture_index)
        return LectureProgress.from_row(row)

    async def save_progress(
        self, progress: LectureProgress, previous: LectureProgress
    ) -> bool:
        """Write ``progress`` if the stored row is still ``previous``.

        The first write inserts with ``IF NOT EXISTS``; later writes are
        conditional on ``version``. On success ``progress.version`` is bumped.

        Returns:
            False when another writer got there first (nothing written)

        Raises:
            ProgressRegressionError: If the write would reset ``completed``
                or ``quiz_passed``
        """
        if progress.regresses(previous):
            logger.warning(
                "progress_regression_rejected",
                lecture_index=progress.lecture_index,
                completed=progress.completed,
                quiz_passed=progress.quiz_passed,
            )
            raise ProgressRegressionError

        new_version = previous.version + 1
        updated_at = progress.updated_at or datetime.now(UTC)

        if previous.is_persisted:
            result = await self.session.aexecute(
                self._update_progress,
                [
                    progress.content_viewed,
                    progress.time_spent,
                    progress.completed,
                    progress.quiz_passed,
                    progress.last_score,
                    progress.best_score,
                    progress.attempts,
                    new_version,
                    progress.started_at,
                    progress.completed_at,
                    updated_at,
                    progress.learner_id,
                    progress.course_id,
                    progress.lecture_index,
                    previous.version,
                ],
            )
        else:
            result = await self.session.aexecute(
                self._insert_progress,
                [
                    progress.learner_id,
                    progress.course_id,
                    progress.lecture_index,
                    progress.content_viewed,
                    progress.time_spent,
                    progress.completed,
                    progress.quiz_passed,
                    progress.last_score,
                    progress.best_score,
                    progress.attempts,
                    new_version,
                    progress.started_at,
                    progress.completed_at,
                    updated_at,
                ],
            )

        if not result.was_applied:
            return False

        progress.version = new_version
        progress.updated_at = updated_at
        logger.debug(
            "progress_saved",
            lecture_index=progress.lecture_index,
            version=new_version,
            completed=progress.completed,
            quiz_passed=progress.quiz_passed,
        )
        return True

    # ==========================================================================
    # Attempt History
    # ==========================================================================

    async def record_attempt(self, attempt: QuizAttempt) -> QuizAttempt:
        """Append an attempt to the history."""
        await self.session.aexecute(self._insert_attempt, attempt.to_row())
        return attempt

    async def list_attempts(
        self,
        learner_id: UUID,
        course_id: UUID,
        lecture_index: int,
        limit: int = DEFAULT_ATTEMPT_LIMIT,
    ) -> list[QuizAttempt]:
        """Attempts on a lecture, newest first."""
        rows = await self.session.aexecute(
            self._list_attempts, [learner_id, course_id, lecture_index, limit]
        )
        return [QuizAttempt.from_row(row) for row in rows]
