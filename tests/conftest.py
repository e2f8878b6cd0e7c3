"""Shared fixtures.

Environment is set before ``src.main`` is imported so logging goes to a
temporary directory and the app starts in testing mode. ``TestClient`` is
used without its context manager: the lifespan (Cassandra, exam service) is
never run and routes see whatever services a test puts on ``app.state``.
"""

import os
import tempfile
from collections.abc import Callable, Iterator
from uuid import UUID, uuid4

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="lecturegate-logs-"))
os.environ.setdefault("LOG_FORMAT", "console")

from fastapi.testclient import TestClient  # noqa: E402

from src.assessments.evaluator import AssessmentEvaluator  # noqa: E402
from src.core.exceptions import ProgressRegressionError  # noqa: E402
from src.courses.models import (  # noqa: E402
    NO_ASSESSMENT,
    Assessment,
    Course,
    FormalAssessment,
    InlineAssessment,
    InlineQuiz,
    Lecture,
    QuestionType,
    QuizQuestion,
)
from src.courses.service import CourseNotFoundError, LectureNotFoundError  # noqa: E402
from src.gating.service import AccessGate  # noqa: E402
from src.main import app  # noqa: E402
from src.progress.models import Enrollment, LectureProgress, QuizAttempt  # noqa: E402
from src.progress.service import AlreadyEnrolledError  # noqa: E402


# ==============================================================================
# Builders
# ==============================================================================


def mcq(text: str = "Pick B", options: tuple[str, ...] = ("A", "B"), answer: str = "B") -> QuizQuestion:
    return QuizQuestion(text=text, type=QuestionType.MCQ, options=options, correct_answer=answer)


def short(text: str = "Explain", answer: str = "photosynthesis") -> QuizQuestion:
    return QuizQuestion(text=text, type=QuestionType.SHORT, correct_answer=answer)


def mcq_quiz(count: int = 5, enabled: bool = True) -> InlineQuiz:
    """Quiz of ``count`` MCQs whose correct answer is always "B"."""
    return InlineQuiz(
        questions=tuple(mcq(text=f"Question {i + 1}") for i in range(count)),
        enabled=enabled,
    )


def build_course(*assessments: Assessment, passing_score: int | None = None) -> Course:
    """Course with one lecture per assessment, codes 10001, 10002..."""
    return Course(
        title="Biology 101",
        course_code="12345",
        lectures=[
            Lecture(
                index=i,
                title=f"Lecture {i + 1}",
                lecture_code=f"{10001 + i}",
                assessment=assessment,
                passing_score=passing_score,
            )
            for i, assessment in enumerate(assessments)
        ],
    )


@pytest.fixture
def make_quiz() -> Callable[..., InlineQuiz]:
    return mcq_quiz


@pytest.fixture
def make_course() -> Callable[..., Course]:
    return build_course


@pytest.fixture
def inline(make_quiz) -> Callable[..., InlineAssessment]:
    def factory(count: int = 5, enabled: bool = True) -> InlineAssessment:
        return InlineAssessment(make_quiz(count, enabled))

    return factory


@pytest.fixture
def no_assessment() -> Assessment:
    return NO_ASSESSMENT


@pytest.fixture
def formal() -> FormalAssessment:
    return FormalAssessment("exam-1")


@pytest.fixture
def learner_id() -> UUID:
    return uuid4()


# ==============================================================================
# In-memory stores
# ==============================================================================


class FakeCourseService:
    """Content Store backed by a dict."""

    def __init__(self, *courses: Course):
        self.courses = {course.id: course for course in courses}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self.courses.get(course_id)

    async def require_course(self, course_id: UUID) -> Course:
        course = self.courses.get(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def require_lecture(self, course_id: UUID, lecture_index: int) -> tuple[Course, Lecture]:
        course = await self.require_course(course_id)
        lecture = course.lecture(lecture_index)
        if lecture is None:
            raise LectureNotFoundError
        return course, lecture


class FakeProgressService:
    """Enrollment Store with the same compare-and-swap contract as Cassandra.

    ``lose_next_writes`` makes the next N writes lose the race: a concurrent
    writer (``concurrent_change``) is applied to the stored row first.
    """

    def __init__(self):
        self.enrollments: dict[tuple[UUID, UUID], Enrollment] = {}
        self.rows: dict[tuple[UUID, UUID, int], LectureProgress] = {}
        self.attempts: list[QuizAttempt] = []
        self.writes: list[LectureProgress] = []
        self.lose_next_writes = 0
        self.concurrent_change: Callable[[LectureProgress], LectureProgress] = (
            lambda p: p._replace(attempts=p.attempts + 1)
        )

    async def enroll_learner(self, learner_id: UUID, course_id: UUID) -> Enrollment:
        if (learner_id, course_id) in self.enrollments:
            raise AlreadyEnrolledError
        enrollment = Enrollment(course_id=course_id, learner_id=learner_id)
        self.enrollments[(learner_id, course_id)] = enrollment
        return enrollment

    async def get_enrollment(self, learner_id: UUID, course_id: UUID) -> Enrollment | None:
        enrollment = self.enrollments.get((learner_id, course_id))
        if enrollment is None:
            return None
        progress = {
            index: row
            for (lid, cid, index), row in self.rows.items()
            if lid == learner_id and cid == course_id
        }
        return Enrollment(
            course_id=course_id,
            learner_id=learner_id,
            enrolled_at=enrollment.enrolled_at,
            progress=progress,
        )

    async def get_lecture_progress(
        self, learner_id: UUID, course_id: UUID, lecture_index: int
    ) -> LectureProgress:
        row = self.rows.get((learner_id, course_id, lecture_index))
        return row or LectureProgress.empty(learner_id, course_id, lecture_index)

    def _store(self, progress: LectureProgress) -> None:
        key = (progress.learner_id, progress.course_id, progress.lecture_index)
        self.rows[key] = progress._replace()

    async def save_progress(self, progress: LectureProgress, previous: LectureProgress) -> bool:
        if progress.regresses(previous):
            raise ProgressRegressionError

        key = (progress.learner_id, progress.course_id, progress.lecture_index)
        if self.lose_next_writes > 0:
            self.lose_next_writes -= 1
            stored = self.rows.get(key) or previous
            raced = self.concurrent_change(stored)
            raced.version = stored.version + 1
            self._store(raced)
            return False

        stored = self.rows.get(key)
        stored_version = stored.version if stored else 0
        if stored_version != previous.version:
            return False

        progress.version = previous.version + 1
        self._store(progress)
        self.writes.append(progress)
        return True

    async def record_attempt(self, attempt: QuizAttempt) -> QuizAttempt:
        self.attempts.append(attempt)
        return attempt

    async def list_attempts(
        self, learner_id: UUID, course_id: UUID, lecture_index: int, limit: int = 50
    ) -> list[QuizAttempt]:
        matching = [
            a
            for a in self.attempts
            if a.learner_id == learner_id
            and a.course_id == course_id
            and a.lecture_index == lecture_index
        ]
        return list(reversed(matching))[:limit]


@pytest.fixture
def progress_store() -> FakeProgressService:
    return FakeProgressService()


@pytest.fixture
def gate_for(progress_store) -> Callable[..., AccessGate]:
    """Build a gate over in-memory stores for the given course."""

    def factory(
        course: Course,
        *,
        evaluator: AssessmentEvaluator | None = None,
        exam_client=None,
        write_retries: int = 1,
    ) -> AccessGate:
        return AccessGate(
            progress_service=progress_store,
            course_service=FakeCourseService(course),
            evaluator=evaluator or AssessmentEvaluator(exam_client),
            exam_client=exam_client,
            write_retries=write_retries,
        )

    return factory


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client; services placed on app.state are removed afterwards."""
    yield TestClient(app)
    for name in ("course_service", "progress_service", "access_gate"):
        if hasattr(app.state, name):
            delattr(app.state, name)
