"""Course content service layer (Content Store adapter).

Business logic for:
- Loading a course with its ordered lectures
- Saving whole course definitions (validated, single logged batch)
- Replacing a lecture's auto-quiz, attaching/detaching a formal exam
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra.query import BatchStatement, BatchType

from src.authoring.validators import (
    ensure_valid,
    validate_course,
    validate_exam_assignment,
)
from src.core.exceptions import NotFoundError

from .models import (
    DEFAULT_PASSING_SCORE,
    NO_ASSESSMENT,
    Course,
    FormalAssessment,
    InlineAssessment,
    InlineQuiz,
    Lecture,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    """Course does not exist."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class LectureNotFoundError(NotFoundError):
    """Lecture index outside the course (or course has no lectures)."""

    def __init__(self, message: str = "Lecture not found"):
        super().__init__(message, "lecture_not_found")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for course definitions."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, course_code, title, description, teacher_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_lectures = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lectures WHERE course_id = ?
        """)

        self._upsert_lecture = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lectures
            (course_id, position, lecture_code, title, description, content_items,
             assessment_kind, inline_quiz, auto_quiz_enabled, formal_exam_id,
             exam_required, passing_score, is_locked)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Range delete for lectures past the new end of the course
        self._delete_trailing_lectures = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lectures
            WHERE course_id = ? AND position >= ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get a course with its lectures ordered by position."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        if not row:
            return None
        lecture_rows = await self.session.aexecute(self._get_lectures, [course_id])
        return Course.from_rows(row, list(lecture_rows))

    async def require_course(self, course_id: UUID) -> Course:
        """Get a course or raise ``CourseNotFoundError``."""
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def require_lecture(self, course_id: UUID, lecture_index: int) -> tuple[Course, Lecture]:
        """Get a course and one of its lectures, raising when either is missing."""
        course = await self.require_course(course_id)
        lecture = course.lecture(lecture_index)
        if lecture is None:
            raise LectureNotFoundError
        return course, lecture

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def save_course(self, course: Course) -> Course:
        """Validate and persist a whole course definition.

        All-or-nothing: nothing is written unless every lecture and every
        attached assessment validates.

        Raises:
            ValidationError: On the first structural violation
        """
        ensure_valid(validate_course(course))

        existing = await self.get_course(course.id)
        if existing is not None:
            course.created_at = existing.created_at
        course.updated_at = datetime.now(UTC)

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._upsert_course,
            [
                course.id,
                course.course_code,
                course.title,
                course.description,
                course.teacher_id,
                course.created_at,
                course.updated_at,
            ],
        )
        for lecture in course.lectures:
            batch.add(self._upsert_lecture, lecture.to_row(course.id))
        batch.add(self._delete_trailing_lectures, [course.id, course.lecture_count])

        await self.session.aexecute(batch)

        logger.info(
            "course_saved",
            course_id=str(course.id),
            lecture_count=course.lecture_count,
        )
        return course

    async def _save_lecture(self, course_id: UUID, lecture: Lecture) -> None:
        await self.session.aexecute(self._upsert_lecture, lecture.to_row(course_id))

    async def set_inline_quiz(
        self, course_id: UUID, lecture_index: int, quiz: InlineQuiz
    ) -> Lecture:
        """Replace a lecture's auto-quiz.

        Raises:
            ValidationError: ``min_5`` for an enabled quiz that is too short,
                malformed questions, or a formal exam already attached
        """
        _, lecture = await self.require_lecture(course_id, lecture_index)
        assessment = InlineAssessment(quiz)
        ensure_valid(validate_exam_assignment(lecture, assessment))

        lecture.assessment = assessment
        await self._save_lecture(course_id, lecture)

        logger.info(
            "inline_quiz_saved",
            course_id=str(course_id),
            lecture_index=lecture_index,
            question_count=quiz.total_questions,
            enabled=quiz.enabled,
        )
        return lecture

    async def assign_exam(
        self,
        course_id: UUID,
        lecture_index: int,
        exam_id: str,
        passing_score: int | None = None,
    ) -> Lecture:
        """Attach a formal exam reference to a lecture."""
        _, lecture = await self.require_lecture(course_id, lecture_index)
        assessment = FormalAssessment(exam_id)
        ensure_valid(validate_exam_assignment(lecture, assessment, passing_score))

        lecture.assessment = assessment
        lecture.exam_required = True
        lecture.passing_score = (
            DEFAULT_PASSING_SCORE if passing_score is None else passing_score
        )
        await self._save_lecture(course_id, lecture)

        logger.info(
            "exam_assigned",
            course_id=str(course_id),
            lecture_index=lecture_index,
            exam_id=exam_id,
            passing_score=lecture.passing_score,
        )
        return lecture

    async def detach_assessment(self, course_id: UUID, lecture_index: int) -> Lecture:
        """Remove whatever assessment a lecture has; resets the passing score."""
        _, lecture = await self.require_lecture(course_id, lecture_index)

        lecture.assessment = NO_ASSESSMENT
        lecture.exam_required = False
        lecture.passing_score = DEFAULT_PASSING_SCORE
        await self._save_lecture(course_id, lecture)

        logger.info(
            "assessment_detached",
            course_id=str(course_id),
            lecture_index=lecture_index,
        )
        return lecture
