"""Assessment scoring.

Inline quizzes are scored here; formal exams are graded by the External
Exam Service and mapped into the same result shape. Either way the
lecture's passing score decides the pass. Dispatch is on the
assessment tag.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import structlog

from src.core.exceptions import ValidationError
from src.courses.models import (
    Assessment,
    AssessmentKind,
    InlineQuiz,
    QuestionType,
    QuizQuestion,
)

from .exam_client import ExamServiceClient, ExamServiceUnavailableError


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    """Verdict for one submission."""

    score: int
    correct_count: int
    total_questions: int
    passed: bool
    assessment_kind: AssessmentKind = AssessmentKind.INLINE


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero.

    Examples:
        >>> round_half_up(Decimal("12.5"))
        13
    """
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def score_percent(correct_count: int, total_questions: int) -> int:
    """Percentage of correct answers, 0 for an empty quiz.

    Examples:
        >>> score_percent(1, 8)
        13
        >>> score_percent(2, 3)
        67
    """
    if total_questions <= 0:
        return 0
    return round_half_up(Decimal(100 * correct_count) / Decimal(total_questions))


def normalize_text(value: str) -> str:
    return " ".join((value or "").lower().split())


def is_answer_correct(
    question: QuizQuestion,
    submitted: str | None,
    *,
    lenient_short_answers: bool = True,
) -> bool:
    """Check one submitted answer.

    MCQ answers must equal ``correct_answer`` exactly. Short answers count
    when non-blank while ``lenient_short_answers`` is on; otherwise they
    are compared case- and whitespace-insensitively.
    """
    if submitted is None:
        return False

    if question.type == QuestionType.MCQ:
        return submitted == question.correct_answer

    if not submitted.strip():
        return False
    if lenient_short_answers:
        return True
    return normalize_text(submitted) == normalize_text(question.correct_answer)


def evaluate_inline_quiz(
    quiz: InlineQuiz,
    answers: Sequence[str | None],
    passing_score: int,
    *,
    lenient_short_answers: bool = True,
) -> EvaluationResult:
    """Score answers positionally against the quiz questions.

    Missing answers count as wrong; extra answers are ignored. A quiz
    without questions scores 0 and never passes.
    """
    correct_count = sum(
        1
        for index, question in enumerate(quiz.questions)
        if is_answer_correct(
            question,
            answers[index] if index < len(answers) else None,
            lenient_short_answers=lenient_short_answers,
        )
    )
    total = quiz.total_questions
    score = score_percent(correct_count, total)

    return EvaluationResult(
        score=score,
        correct_count=correct_count,
        total_questions=total,
        passed=total > 0 and score >= passing_score,
        assessment_kind=AssessmentKind.INLINE,
    )


class AssessmentEvaluator:
    """Evaluate a submission against whatever assessment a lecture carries."""

    def __init__(
        self,
        exam_client: ExamServiceClient | None = None,
        *,
        lenient_short_answers: bool = True,
    ):
        self.exam_client = exam_client
        self.lenient_short_answers = lenient_short_answers

    async def evaluate(
        self,
        assessment: Assessment,
        answers: Sequence[str | None],
        *,
        learner_id: str,
        passing_score: int,
    ) -> EvaluationResult:
        """Score ``answers``.

        ``passing_score`` is the lecture's threshold and decides ``passed``
        for both kinds; a formal exam contributes only its score.

        Raises:
            ValidationError: ``no_assessment`` for a lecture without one
            UpstreamError: Exam service missing, unreachable or malformed
            ExamNotFoundError: Exam reference unknown to the service
            ExamAttemptRejectedError: The service refused the attempt
        """
        if assessment.kind == AssessmentKind.INLINE:
            result = evaluate_inline_quiz(
                assessment.quiz,
                answers,
                passing_score,
                lenient_short_answers=self.lenient_short_answers,
            )
        elif assessment.kind == AssessmentKind.FORMAL:
            result = await self._evaluate_formal(
                assessment.exam_id, answers, learner_id, passing_score
            )
        else:
            raise ValidationError("no_assessment", "Lecture has no assessment")

        logger.info(
            "quiz_attempt_scored",
            assessment_kind=result.assessment_kind.value,
            score=result.score,
            correct_count=result.correct_count,
            total_questions=result.total_questions,
            passed=result.passed,
        )
        return result

    async def _evaluate_formal(
        self,
        exam_id: str,
        answers: Sequence[str | None],
        learner_id: str,
        passing_score: int,
    ) -> EvaluationResult:
        if self.exam_client is None:
            raise ExamServiceUnavailableError

        graded = await self.exam_client.submit_exam_attempt(
            exam_id, learner_id, list(answers)
        )
        return EvaluationResult(
            score=graded.score,
            correct_count=graded.correct_answers,
            total_questions=graded.total_questions,
            passed=graded.score >= passing_score,
            assessment_kind=AssessmentKind.FORMAL,
        )
