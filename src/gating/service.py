"""Enrollment/Access Gate.

Entry point for learner actions. Combines enrollment lookup with the
derived lecture status, runs the evaluator for submissions and persists
progress through compare-and-swap writes.

Side effects: exactly one progress write per successful submission or
content view; nothing is written on a denial or when evaluation fails.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from uuid import UUID

import structlog

from src.assessments.evaluator import AssessmentEvaluator
from src.assessments.exam_client import ExamServiceClient
from src.core.context import GatingContext
from src.core.exceptions import UpstreamError
from src.courses.models import AssessmentKind, Course, Lecture
from src.courses.service import CourseService
from src.progress.engine import (
    LectureStatus,
    course_progress_percent,
    course_statuses,
    lecture_status,
    resume_lecture_index,
)
from src.progress.models import Enrollment, LectureProgress, QuizAttempt
from src.progress.service import ProgressService

from .results import Allowed, DenialReason, Denied


logger = structlog.get_logger(__name__)


class ProgressConflictError(UpstreamError):
    """Progress write lost the compare-and-swap on every try."""

    def __init__(self, message: str = "Concurrent progress update, try again"):
        super().__init__(message, "progress_conflict")


class AttemptRecordError(UpstreamError):
    """Progress was saved but the attempt history row was not."""

    def __init__(self, message: str = "Attempt was scored but could not be recorded"):
        super().__init__(message, "attempt_record_failed")


@dataclass(frozen=True)
class CourseStatus:
    """Status of every lecture of a course for one learner."""

    course_id: UUID
    learner_id: UUID
    enrolled: bool
    statuses: list[LectureStatus]
    progress_percent: int
    resume_index: int


@dataclass(frozen=True)
class AssessmentInfo:
    """What a learner needs to know before attempting an assessment."""

    lecture_index: int
    kind: AssessmentKind
    passing_score: int
    question_count: int
    gates_next_lecture: bool
    attempts: int
    best_score: int | None
    quiz_passed: bool
    exam_id: str | None = None
    max_attempts: int | None = None
    time_limit: int | None = None
    attempts_used: int | None = None


class AccessGate:
    """Authorize and record learner actions on a course."""

    def __init__(
        self,
        progress_service: ProgressService,
        course_service: CourseService,
        evaluator: AssessmentEvaluator,
        *,
        exam_client: ExamServiceClient | None = None,
        write_retries: int = 1,
    ):
        self.progress_service = progress_service
        self.course_service = course_service
        self.evaluator = evaluator
        self.exam_client = exam_client
        self.write_retries = write_retries

    async def _load(
        self, learner_id: UUID, course_id: UUID, lecture_index: int | None = None
    ) -> tuple[Course, Enrollment | None]:
        """Course (lecture checked when given) and the learner's enrollment."""
        if lecture_index is None:
            course = await self.course_service.require_course(course_id)
        else:
            course, _ = await self.course_service.require_lecture(course_id, lecture_index)
        enrollment = await self.progress_service.get_enrollment(learner_id, course_id)
        return course, enrollment

    def _deny(self, event: str, reason: DenialReason, lecture_index: int) -> Denied:
        logger.info(event, reason=reason.value, lecture_index=lecture_index)
        return Denied(reason)

    def _check_open(
        self,
        event: str,
        course: Course,
        enrollment: Enrollment | None,
        lecture_index: int,
    ) -> Denied | LectureStatus:
        if enrollment is None:
            return self._deny(event, DenialReason.NOT_ENROLLED, lecture_index)
        status = lecture_status(course, enrollment.progress, lecture_index)
        if status == LectureStatus.LOCKED:
            return self._deny(event, DenialReason.LOCKED, lecture_index)
        return status

    async def _write_progress(
        self,
        current: LectureProgress,
        apply: Callable[[LectureProgress], LectureProgress],
    ) -> LectureProgress:
        """Apply a monotonic change and persist it with compare-and-swap.

        On a lost race the row is re-read and ``apply`` re-run on it, at most
        ``write_retries`` times.

        Raises:
            ProgressConflictError: Every try lost the race
        """
        for attempt in range(self.write_retries + 1):
            updated = apply(current)
            if await self.progress_service.save_progress(updated, current):
                return updated

            logger.warning(
                "progress_cas_conflict",
                lecture_index=current.lecture_index,
                version=current.version,
                attempt=attempt + 1,
            )
            if attempt < self.write_retries:
                current = await self.progress_service.get_lecture_progress(
                    current.learner_id, current.course_id, current.lecture_index
                )

        logger.error("progress_write_failed", lecture_index=current.lecture_index)
        raise ProgressConflictError

    # ==========================================================================
    # Learner actions
    # ==========================================================================

    async def authorize_view(
        self, learner_id: UUID, course_id: UUID, lecture_index: int
    ) -> Allowed | Denied:
        """Check a learner may open a lecture. Never writes.

        Raises:
            NotFoundError: Unknown course or lecture index
        """
        with GatingContext(learner_id, course_id):
            course, enrollment = await self._load(learner_id, course_id, lecture_index)
            outcome = self._check_open(
                "lecture_view_denied", course, enrollment, lecture_index
            )
            if isinstance(outcome, Denied):
                return outcome
            return Allowed(outcome)

    async def record_content_view(
        self,
        learner_id: UUID,
        course_id: UUID,
        lecture_index: int,
        *,
        time_spent: float = 0.0,
        fully_viewed: bool = False,
    ) -> Allowed | Denied:
        """Record that a learner viewed a lecture's content.

        A full view marks the lecture's content completed, which unlocks the
        next lecture when no assessment gates it.
        """
        with GatingContext(learner_id, course_id):
            course, enrollment = await self._load(learner_id, course_id, lecture_index)
            outcome = self._check_open(
                "content_view_denied", course, enrollment, lecture_index
            )
            if isinstance(outcome, Denied):
                return outcome

            progress = await self._write_progress(
                enrollment.progress_for(lecture_index),
                lambda current: current.with_view(time_spent, fully_viewed),
            )
            progress_map = {**enrollment.progress, lecture_index: progress}
            status = lecture_status(course, progress_map, lecture_index)

            logger.info(
                "content_view_recorded",
                lecture_index=lecture_index,
                fully_viewed=fully_viewed,
                status=status.value,
            )
            return Allowed(status, progress)

    async def authorize_submission(
        self,
        learner_id: UUID,
        course_id: UUID,
        lecture_index: int,
        answers: Sequence[str | None],
    ) -> QuizAttempt | Denied:
        """Score a submission and persist the resulting progress.

        Content need not be completed first, and a passed quiz may be
        retaken: ``quiz_passed`` never goes back to false.

        Raises:
            NotFoundError: Unknown course, lecture or exam reference
            UpstreamError: Exam service failure, lost progress writes or an
                attempt that could not be recorded after progress was saved
            ExamAttemptRejectedError: The exam service refused the attempt
        """
        with GatingContext(learner_id, course_id):
            course, enrollment = await self._load(learner_id, course_id, lecture_index)
            outcome = self._check_open(
                "submission_denied", course, enrollment, lecture_index
            )
            if isinstance(outcome, Denied):
                return outcome

            lecture: Lecture = course.lectures[lecture_index]
            if not lecture.has_assessment:
                return self._deny(
                    "submission_denied", DenialReason.NO_ASSESSMENT, lecture_index
                )

            answers = list(answers)
            result = await self.evaluator.evaluate(
                lecture.assessment,
                answers,
                learner_id=str(learner_id),
                passing_score=lecture.passing_score,
            )

            progress = await self._write_progress(
                enrollment.progress_for(lecture_index),
                lambda current: current.with_attempt(result),
            )
            try:
                attempt = await self.progress_service.record_attempt(
                    QuizAttempt.from_result(
                        learner_id, course_id, lecture_index, answers, result
                    )
                )
            except Exception as e:
                logger.error(
                    "attempt_record_failed",
                    lecture_index=lecture_index,
                    score=result.score,
                    passed=result.passed,
                    error=str(e),
                )
                raise AttemptRecordError from e

            logger.info(
                "submission_recorded",
                lecture_index=lecture_index,
                score=result.score,
                passed=result.passed,
                quiz_passed=progress.quiz_passed,
                attempts=progress.attempts,
                answer_count=len(answers),
            )
            return attempt

    # ==========================================================================
    # Read-only views
    # ==========================================================================

    async def course_status(self, learner_id: UUID, course_id: UUID) -> CourseStatus:
        """Status of every lecture; all locked when the learner is not enrolled.

        Raises:
            NotFoundError: Unknown course or course without lectures
        """
        with GatingContext(learner_id, course_id):
            course, enrollment = await self._load(learner_id, course_id)
            progress_map = enrollment.progress if enrollment else {}
            statuses = course_statuses(
                course, progress_map, enrolled=enrollment is not None
            )
            return CourseStatus(
                course_id=course_id,
                learner_id=learner_id,
                enrolled=enrollment is not None,
                statuses=statuses,
                progress_percent=course_progress_percent(statuses),
                resume_index=resume_lecture_index(statuses),
            )

    async def assessment_info(
        self, learner_id: UUID, course_id: UUID, lecture_index: int
    ) -> AssessmentInfo | Denied:
        """Describe a lecture's assessment and the learner's standing on it."""
        with GatingContext(learner_id, course_id):
            course, enrollment = await self._load(learner_id, course_id, lecture_index)
            if enrollment is None:
                return self._deny(
                    "assessment_info_denied", DenialReason.NOT_ENROLLED, lecture_index
                )

            lecture = course.lectures[lecture_index]
            progress = enrollment.progress_for(lecture_index)
            quiz = lecture.inline_quiz
            info = AssessmentInfo(
                lecture_index=lecture_index,
                kind=lecture.assessment.kind,
                passing_score=lecture.passing_score,
                question_count=quiz.total_questions if quiz else 0,
                gates_next_lecture=lecture.has_assessment,
                attempts=progress.attempts,
                best_score=progress.best_score,
                quiz_passed=progress.quiz_passed,
                exam_id=lecture.formal_exam_id,
            )

            exam_id = lecture.formal_exam_id
            if exam_id is None or self.exam_client is None:
                return info

            exam = await self.exam_client.get_exam(exam_id)
            used = await self.exam_client.get_attempt_count(exam_id, str(learner_id))
            return replace(
                info,
                question_count=exam.total_questions,
                max_attempts=exam.max_attempts,
                time_limit=exam.time_limit,
                attempts_used=used,
            )

    async def list_attempts(
        self, learner_id: UUID, course_id: UUID, lecture_index: int
    ) -> list[QuizAttempt] | Denied:
        """Attempt history on a lecture, newest first."""
        with GatingContext(learner_id, course_id):
            _, enrollment = await self._load(learner_id, course_id, lecture_index)
            if enrollment is None:
                return self._deny(
                    "attempt_history_denied", DenialReason.NOT_ENROLLED, lecture_index
                )
            return await self.progress_service.list_attempts(
                learner_id, course_id, lecture_index
            )
