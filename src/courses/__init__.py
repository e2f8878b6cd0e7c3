"""Course content module (Content Store adapter).

Provides:
- Course and lecture entities with the tagged assessment variant
- Course persistence and authoring operations
"""

from .models import (
    COURSES_TABLES_CQL,
    DEFAULT_PASSING_SCORE,
    NO_ASSESSMENT,
    Assessment,
    AssessmentKind,
    Course,
    FormalAssessment,
    InlineAssessment,
    InlineQuiz,
    Lecture,
    QuestionType,
    QuizQuestion,
)


__all__ = [
    "COURSES_TABLES_CQL",
    "DEFAULT_PASSING_SCORE",
    "NO_ASSESSMENT",
    "Assessment",
    "AssessmentKind",
    "Course",
    "FormalAssessment",
    "InlineAssessment",
    "InlineQuiz",
    "Lecture",
    "QuestionType",
    "QuizQuestion",
]
