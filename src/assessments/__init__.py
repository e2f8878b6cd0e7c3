"""Assessment evaluation module.

Provides:
- Inline quiz scoring
- External Exam Service client for formal exams
"""

from .evaluator import (
    AssessmentEvaluator,
    EvaluationResult,
    evaluate_inline_quiz,
    score_percent,
)
from .exam_client import (
    ExamAttemptRejectedError,
    ExamAttemptResult,
    ExamNotFoundError,
    ExamServiceClient,
    FormalExam,
)


__all__ = [
    "AssessmentEvaluator",
    "EvaluationResult",
    "ExamAttemptRejectedError",
    "ExamAttemptResult",
    "ExamNotFoundError",
    "ExamServiceClient",
    "FormalExam",
    "evaluate_inline_quiz",
    "score_percent",
]
