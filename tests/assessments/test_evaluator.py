"""Tests for assessment scoring."""

from unittest.mock import AsyncMock, Mock

import pytest

from src.assessments.evaluator import (
    AssessmentEvaluator,
    evaluate_inline_quiz,
    is_answer_correct,
    score_percent,
)
from src.assessments.exam_client import ExamAttemptResult, ExamServiceClient
from src.core.exceptions import UpstreamError, ValidationError
from src.courses.models import (
    NO_ASSESSMENT,
    AssessmentKind,
    FormalAssessment,
    InlineAssessment,
    InlineQuiz,
    QuestionType,
    QuizQuestion,
)


MCQ = QuizQuestion(text="Pick B", type=QuestionType.MCQ, options=("A", "B"), correct_answer="B")
SHORT = QuizQuestion(text="Name the process", type=QuestionType.SHORT, correct_answer="photosynthesis")


class TestMCQCorrectness:
    """MCQ answers need an exact match."""

    def test_correct_option_scores_100(self) -> None:
        result = evaluate_inline_quiz(InlineQuiz(questions=(MCQ,)), ["B"], 60)
        assert (result.correct_count, result.total_questions, result.score) == (1, 1, 100)
        assert result.passed is True

    def test_wrong_option_scores_0(self) -> None:
        result = evaluate_inline_quiz(InlineQuiz(questions=(MCQ,)), ["A"], 60)
        assert (result.correct_count, result.score) == (0, 0)
        assert result.passed is False

    @pytest.mark.parametrize("answer", ["b", " B", "B ", "", None])
    def test_near_misses_are_wrong(self, answer: str | None) -> None:
        assert is_answer_correct(MCQ, answer) is False


class TestShortAnswerLeniency:
    """Short answers count when non-blank (lenient mode)."""

    @pytest.mark.parametrize("answer", ["photosynthesis", "completely wrong", "x", "  y  "])
    def test_any_non_blank_answer_counts(self, answer: str) -> None:
        assert is_answer_correct(SHORT, answer) is True

    @pytest.mark.parametrize("answer", ["", "   ", "\t\n", None])
    def test_blank_answer_does_not_count(self, answer: str | None) -> None:
        assert is_answer_correct(SHORT, answer) is False

    def test_strict_mode_compares_normalized_text(self) -> None:
        assert is_answer_correct(SHORT, "  Photosynthesis ", lenient_short_answers=False)
        assert not is_answer_correct(SHORT, "respiration", lenient_short_answers=False)

    def test_strict_mode_through_evaluate(self) -> None:
        quiz = InlineQuiz(questions=(SHORT, SHORT))
        result = evaluate_inline_quiz(
            quiz, ["photosynthesis", "wrong"], 60, lenient_short_answers=False
        )
        assert result.correct_count == 1
        assert result.score == 50


class TestScoring:
    """Score rounding and pass threshold."""

    @pytest.mark.parametrize(
        "correct,total,expected",
        [
            (0, 5, 0),
            (3, 5, 60),
            (1, 8, 13),  # 12.5 rounds half-up
            (2, 3, 67),
            (1, 3, 33),
            (5, 5, 100),
            (0, 0, 0),
        ],
    )
    def test_score_percent(self, correct: int, total: int, expected: int) -> None:
        assert score_percent(correct, total) == expected

    def test_pass_at_exact_threshold(self) -> None:
        quiz = InlineQuiz(questions=(MCQ,) * 5)
        result = evaluate_inline_quiz(quiz, ["B", "B", "B", "A", "A"], 60)
        assert result.score == 60
        assert result.passed is True

    def test_fail_below_lecture_threshold(self) -> None:
        """The lecture's passing score decides, not a fixed constant."""
        quiz = InlineQuiz(questions=(MCQ,) * 5)
        result = evaluate_inline_quiz(quiz, ["B", "B", "B", "A", "A"], 70)
        assert result.passed is False

    def test_missing_answers_count_wrong(self) -> None:
        quiz = InlineQuiz(questions=(MCQ,) * 5)
        result = evaluate_inline_quiz(quiz, ["B", "B"], 60)
        assert result.correct_count == 2
        assert result.score == 40

    def test_extra_answers_ignored(self) -> None:
        quiz = InlineQuiz(questions=(MCQ,))
        result = evaluate_inline_quiz(quiz, ["B", "B", "B"], 60)
        assert result.total_questions == 1
        assert result.score == 100

    def test_empty_quiz_never_passes(self) -> None:
        result = evaluate_inline_quiz(InlineQuiz(), [], 0)
        assert result.score == 0
        assert result.passed is False


class TestAssessmentEvaluator:
    """Dispatch on the assessment tag."""

    @pytest.mark.asyncio
    async def test_inline_dispatch(self) -> None:
        evaluator = AssessmentEvaluator()
        assessment = InlineAssessment(InlineQuiz(questions=(MCQ, SHORT)))
        result = await evaluator.evaluate(
            assessment, ["A", "something"], learner_id="l-1", passing_score=50
        )
        assert result.assessment_kind == AssessmentKind.INLINE
        assert result.score == 50
        assert result.passed is True

    @pytest.mark.asyncio
    async def test_lenient_flag_is_configurable(self) -> None:
        evaluator = AssessmentEvaluator(lenient_short_answers=False)
        assessment = InlineAssessment(InlineQuiz(questions=(SHORT,)))
        result = await evaluator.evaluate(
            assessment, ["nonsense"], learner_id="l-1", passing_score=60
        )
        assert result.score == 0

    @pytest.mark.asyncio
    async def test_formal_exam_maps_service_result(self) -> None:
        """Formal grading is delegated; the service's score is surfaced."""
        exam_client = Mock(spec=ExamServiceClient)
        exam_client.submit_exam_attempt = AsyncMock(
            return_value=ExamAttemptResult(
                score=72, passed=True, correctAnswers=18, totalQuestions=25
            )
        )
        evaluator = AssessmentEvaluator(exam_client)

        result = await evaluator.evaluate(
            FormalAssessment("exam-7"), ["a", "b"], learner_id="l-1", passing_score=60
        )

        exam_client.submit_exam_attempt.assert_awaited_once_with("exam-7", "l-1", ["a", "b"])
        assert result.assessment_kind == AssessmentKind.FORMAL
        assert (result.score, result.correct_count, result.total_questions) == (72, 18, 25)
        assert result.passed is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("score", "service_passed", "passing_score", "expected"),
        [
            (70, True, 80, False),
            (85, False, 80, True),
            (80, False, 80, True),
        ],
    )
    async def test_formal_pass_uses_lecture_threshold(
        self, score, service_passed, passing_score, expected
    ) -> None:
        exam_client = Mock(spec=ExamServiceClient)
        exam_client.submit_exam_attempt = AsyncMock(
            return_value=ExamAttemptResult(
                score=score, passed=service_passed, correctAnswers=1, totalQuestions=1
            )
        )
        evaluator = AssessmentEvaluator(exam_client)

        result = await evaluator.evaluate(
            FormalAssessment("exam-7"), ["a"], learner_id="l-1", passing_score=passing_score
        )

        assert result.passed is expected

    @pytest.mark.asyncio
    async def test_formal_exam_without_service(self) -> None:
        evaluator = AssessmentEvaluator(None)
        with pytest.raises(UpstreamError) as exc_info:
            await evaluator.evaluate(
                FormalAssessment("exam-7"), [], learner_id="l-1", passing_score=60
            )
        assert exc_info.value.code == "exam_service_unavailable"

    @pytest.mark.asyncio
    async def test_no_assessment_rejected(self) -> None:
        with pytest.raises(ValidationError):
            await AssessmentEvaluator().evaluate(
                NO_ASSESSMENT, [], learner_id="l-1", passing_score=60
            )
