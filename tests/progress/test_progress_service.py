"""Tests for the Enrollment Store (progress service) and progress records."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session

from src.assessments.evaluator import EvaluationResult
from src.core.exceptions import ProgressRegressionError
from src.progress.models import LectureProgress, QuizAttempt
from src.progress.service import AlreadyEnrolledError, ProgressService


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    return Mock(spec=Session)


@pytest.fixture
def progress_service(mock_session) -> ProgressService:
    """ProgressService with mocked statements and aexecute."""
    mock_session.prepare = Mock(side_effect=lambda cql: Mock(name="stmt", cql=cql))
    service = ProgressService(session=mock_session, keyspace="test_keyspace")
    mock_session.aexecute = AsyncMock(return_value=Mock(was_applied=True))
    return service


@pytest.fixture
def course_id() -> UUID:
    return uuid4()


def _result(score: int, passed: bool) -> EvaluationResult:
    return EvaluationResult(score=score, correct_count=0, total_questions=5, passed=passed)


class TestLectureProgressRecord:
    """Value semantics of LectureProgress."""

    def test_empty_is_all_false(self, learner_id: UUID, course_id: UUID) -> None:
        progress = LectureProgress.empty(learner_id, course_id, 3)
        assert progress.lecture_index == 3
        assert not (progress.content_viewed or progress.completed or progress.quiz_passed)
        assert progress.attempts == 0
        assert progress.version == 0

    def test_with_view_accumulates_time(self, learner_id: UUID, course_id: UUID) -> None:
        first = LectureProgress.empty(learner_id, course_id, 0).with_view(30)
        second = first.with_view(15.5, fully_viewed=True)
        assert first.completed is False
        assert second.content_viewed is True
        assert second.time_spent == 45.5
        assert second.completed is True
        assert second.completed_at is not None
        assert second.started_at == first.started_at

    def test_with_view_never_uncompletes(self, learner_id: UUID, course_id: UUID) -> None:
        done = LectureProgress.empty(learner_id, course_id, 0).with_view(0, fully_viewed=True)
        assert done.with_view(5, fully_viewed=False).completed is True

    def test_with_attempt_keeps_pass_on_lower_retake(
        self, learner_id: UUID, course_id: UUID
    ) -> None:
        """A lower-scoring retake updates scores but not quiz_passed."""
        passed = LectureProgress.empty(learner_id, course_id, 0).with_attempt(_result(90, True))
        retake = passed.with_attempt(_result(20, False))
        assert retake.quiz_passed is True
        assert retake.last_score == 20
        assert retake.best_score == 90
        assert retake.attempts == 2

    def test_with_methods_do_not_mutate(self, learner_id: UUID, course_id: UUID) -> None:
        original = LectureProgress.empty(learner_id, course_id, 0)
        original.with_attempt(_result(100, True))
        original.with_view(10, fully_viewed=True)
        assert original.quiz_passed is False
        assert original.completed is False
        assert original.attempts == 0

    @pytest.mark.parametrize(
        "before,after,regresses",
        [
            ({"completed": True}, {"completed": False}, True),
            ({"quiz_passed": True}, {"quiz_passed": False}, True),
            ({"completed": True, "quiz_passed": True}, {"completed": True, "quiz_passed": True}, False),
            ({}, {"completed": True}, False),
            ({"completed": False}, {"completed": False}, False),
        ],
    )
    def test_regresses(
        self, learner_id: UUID, course_id: UUID, before: dict, after: dict, regresses: bool
    ) -> None:
        previous = LectureProgress(learner_id, course_id, 0, **before)
        candidate = LectureProgress(learner_id, course_id, 0, **after)
        assert candidate.regresses(previous) is regresses


class TestEnrollLearner:
    @pytest.mark.asyncio
    async def test_enroll_inserts_if_not_exists(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        enrollment = await progress_service.enroll_learner(learner_id, course_id)

        assert enrollment.learner_id == learner_id
        statement, params = mock_session.aexecute.call_args.args
        assert "IF NOT EXISTS" in statement.cql
        assert params[:2] == [course_id, learner_id]

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_rejected(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=Mock(was_applied=False))
        with pytest.raises(AlreadyEnrolledError):
            await progress_service.enroll_learner(learner_id, course_id)


class TestGetEnrollment:
    @pytest.mark.asyncio
    async def test_missing_enrollment(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=Mock(one=Mock(return_value=None)))
        assert await progress_service.get_enrollment(learner_id, course_id) is None

    @pytest.mark.asyncio
    async def test_loads_progress_map(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        enrollment_row = SimpleNamespace(
            course_id=course_id, learner_id=learner_id, enrolled_at=None
        )
        progress_row = SimpleNamespace(
            learner_id=learner_id,
            course_id=course_id,
            lecture_index=1,
            content_viewed=True,
            time_spent=12.0,
            completed=True,
            quiz_passed=None,
            last_score=None,
            best_score=None,
            attempts=None,
            version=3,
            started_at=None,
            completed_at=None,
            updated_at=None,
        )
        mock_session.aexecute = AsyncMock(
            side_effect=[Mock(one=Mock(return_value=enrollment_row)), [progress_row]]
        )

        enrollment = await progress_service.get_enrollment(learner_id, course_id)

        assert set(enrollment.progress) == {1}
        assert enrollment.progress[1].completed is True
        assert enrollment.progress[1].quiz_passed is False
        assert enrollment.progress[1].version == 3
        assert enrollment.progress_for(0).version == 0


class TestSaveProgress:
    """Compare-and-swap progress writes."""

    @pytest.mark.asyncio
    async def test_first_write_inserts(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        previous = LectureProgress.empty(learner_id, course_id, 0)
        updated = previous.with_view(10, fully_viewed=True)

        assert await progress_service.save_progress(updated, previous) is True

        statement, params = mock_session.aexecute.call_args.args
        assert "IF NOT EXISTS" in statement.cql
        assert params[10] == 1  # version column
        assert updated.version == 1

    @pytest.mark.asyncio
    async def test_later_write_is_conditional_on_version(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        previous = LectureProgress(learner_id, course_id, 0, completed=True, version=4)
        updated = previous.with_attempt(_result(80, True))

        assert await progress_service.save_progress(updated, previous) is True

        statement, params = mock_session.aexecute.call_args.args
        assert "IF version = ?" in statement.cql
        assert params[7] == 5  # new version
        assert params[-1] == 4  # expected version
        assert updated.version == 5

    @pytest.mark.asyncio
    async def test_lost_race_returns_false(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=Mock(was_applied=False))
        previous = LectureProgress(learner_id, course_id, 0, version=2)
        updated = previous.with_view(5)

        assert await progress_service.save_progress(updated, previous) is False
        assert updated.version == 2

    @pytest.mark.asyncio
    async def test_regression_rejected_without_write(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        """Resetting quiz_passed is refused before anything reaches Cassandra."""
        previous = LectureProgress(learner_id, course_id, 0, quiz_passed=True, version=1)
        regressed = LectureProgress(learner_id, course_id, 0, quiz_passed=False, version=1)

        with pytest.raises(ProgressRegressionError):
            await progress_service.save_progress(regressed, previous)
        mock_session.aexecute.assert_not_awaited()


class TestAttempts:
    @pytest.mark.asyncio
    async def test_list_attempts_maps_rows(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        attempt_id = uuid4()
        row = SimpleNamespace(
            learner_id=learner_id,
            course_id=course_id,
            lecture_index=0,
            answers='["B", null]',
            score=50,
            correct_count=1,
            total_questions=2,
            passed=False,
            assessment_kind="inline",
            submitted_at=None,
            attempt_id=attempt_id,
        )
        mock_session.aexecute = AsyncMock(return_value=[row])

        attempts = await progress_service.list_attempts(learner_id, course_id, 0)

        assert len(attempts) == 1
        assert attempts[0].answers == ["B", None]
        assert attempts[0].score == 50
        assert attempts[0].attempt_id == attempt_id

    @pytest.mark.asyncio
    async def test_same_instant_attempts_get_distinct_keys(
        self, progress_service: ProgressService, mock_session, learner_id, course_id
    ) -> None:
        """Two submissions stamped with the same time are both kept."""
        submitted_at = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        first, second = (
            QuizAttempt(learner_id, course_id, 0, ["B"], 100, 1, 1, True, submitted_at=submitted_at)
            for _ in range(2)
        )

        await progress_service.record_attempt(first)
        await progress_service.record_attempt(second)

        keys = [call.args[1][3] for call in mock_session.aexecute.await_args_list]
        assert keys == [first.attempt_id, second.attempt_id]
        assert first.attempt_id != second.attempt_id
        assert first.submitted_at == second.submitted_at
        assert first.attempt_id.version == 1
