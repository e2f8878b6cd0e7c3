"""Structural validation for teacher-authored course content.

Provides validation for:
- Course and lecture codes (exactly 5 digits)
- Lecture titles and duplicate lecture codes
- Inline auto-quizzes (minimum question count, MCQ well-formedness)
- Assessment assignment to a lecture

All checks are synchronous and side-effect free. They return a
``ValidationResult``; callers that persist use ``ensure_valid`` to turn a
failure into ``ValidationError``.
"""

import re
from collections.abc import Sequence
from typing import NamedTuple

from src.core.exceptions import ValidationError
from src.courses.models import (
    CODE_DIGITS,
    MIN_INLINE_QUIZ_QUESTIONS,
    Assessment,
    AssessmentKind,
    Course,
    Lecture,
    QuestionType,
    QuizQuestion,
)


CODE_PATTERN = re.compile(rf"^\d{{{CODE_DIGITS}}}$")

# MCQ questions need at least this many options
MCQ_MIN_OPTIONS = 2

PASSING_SCORE_MIN = 0
PASSING_SCORE_MAX = 100


class ErrorCode:
    """Error codes returned to authoring clients."""

    MIN_QUESTIONS = "min_5"
    EMPTY_QUESTION = "empty_question"
    INVALID_POINTS = "invalid_points"
    MCQ_MIN_OPTIONS = "mcq_min_options"
    MCQ_EMPTY_OPTION = "mcq_empty_option"
    MCQ_NO_CORRECT = "mcq_no_correct"
    MCQ_AMBIGUOUS_CORRECT = "mcq_ambiguous_correct"
    SHORT_NO_ANSWER = "short_no_answer"
    MISSING_TITLE = "missing_title"
    INVALID_LECTURE_CODE = "invalid_lecture_code"
    DUPLICATE_LECTURE_CODE = "duplicate_lecture_code"
    INVALID_COURSE_CODE = "invalid_course_code"
    INVALID_PASSING_SCORE = "invalid_passing_score"
    MISSING_EXAM_REF = "missing_exam_ref"
    ASSESSMENT_CONFLICT = "assessment_conflict"


class ValidationResult(NamedTuple):
    """Result of a validation check.

    ``index`` locates the failing question (quiz checks) or lecture
    (course checks).
    """

    valid: bool
    error: str | None = None
    index: int | None = None


OK = ValidationResult(True)


def is_valid_code(code: str | None) -> bool:
    """Check a course/lecture code is exactly 5 numeric digits.

    Examples:
        >>> is_valid_code("01234")
        True
        >>> is_valid_code("1234")
        False
    """
    return bool(code) and CODE_PATTERN.match(str(code)) is not None


def validate_question(question: QuizQuestion, index: int = 0) -> ValidationResult:
    """Validate a single inline quiz question."""
    if not question.text.strip():
        return ValidationResult(False, ErrorCode.EMPTY_QUESTION, index)

    if question.points < 1:
        return ValidationResult(False, ErrorCode.INVALID_POINTS, index)

    if question.type == QuestionType.MCQ:
        if len(question.options) < MCQ_MIN_OPTIONS:
            return ValidationResult(False, ErrorCode.MCQ_MIN_OPTIONS, index)
        if any(not option.strip() for option in question.options):
            return ValidationResult(False, ErrorCode.MCQ_EMPTY_OPTION, index)

        # Correctness is by value match, not a flag
        matches = sum(1 for option in question.options if option == question.correct_answer)
        if matches == 0:
            return ValidationResult(False, ErrorCode.MCQ_NO_CORRECT, index)
        if matches > 1:
            return ValidationResult(False, ErrorCode.MCQ_AMBIGUOUS_CORRECT, index)

    elif not question.correct_answer.strip():
        return ValidationResult(False, ErrorCode.SHORT_NO_ANSWER, index)

    return OK


def validate_inline_quiz(
    questions: Sequence[QuizQuestion],
    *,
    enabled: bool = True,
) -> ValidationResult:
    """Validate an inline auto-quiz before it is saved.

    The minimum question count only applies when the quiz is enabled;
    question structure is always checked.

    Examples:
        >>> validate_inline_quiz([]).error
        'min_5'
    """
    if enabled and len(questions) < MIN_INLINE_QUIZ_QUESTIONS:
        return ValidationResult(False, ErrorCode.MIN_QUESTIONS)

    for index, question in enumerate(questions):
        result = validate_question(question, index)
        if not result.valid:
            return result

    return OK


def validate_passing_score(passing_score: int) -> ValidationResult:
    """Passing score must be a percentage."""
    if not PASSING_SCORE_MIN <= passing_score <= PASSING_SCORE_MAX:
        return ValidationResult(False, ErrorCode.INVALID_PASSING_SCORE)
    return OK


def validate_assessment(assessment: Assessment) -> ValidationResult:
    """Validate the payload of an assessment variant."""
    if assessment.kind == AssessmentKind.INLINE:
        quiz = assessment.quiz
        return validate_inline_quiz(quiz.questions, enabled=quiz.enabled)
    if assessment.kind == AssessmentKind.FORMAL and not assessment.exam_id.strip():
        return ValidationResult(False, ErrorCode.MISSING_EXAM_REF)
    return OK


def validate_lecture(lecture: Lecture) -> ValidationResult:
    """Validate title, code, passing score and attached assessment."""
    if not lecture.title.strip():
        return ValidationResult(False, ErrorCode.MISSING_TITLE, lecture.index)
    if not is_valid_code(lecture.lecture_code):
        return ValidationResult(False, ErrorCode.INVALID_LECTURE_CODE, lecture.index)

    result = validate_passing_score(lecture.passing_score)
    if not result.valid:
        return result._replace(index=lecture.index)

    return validate_assessment(lecture.assessment)


def validate_exam_assignment(
    lecture: Lecture,
    assessment: Assessment,
    passing_score: int | None = None,
) -> ValidationResult:
    """Validate attaching ``assessment`` to ``lecture``.

    A lecture holds one assessment kind at a time: attaching a different kind
    than the one already attached is rejected until it is detached.
    """
    if not lecture.title.strip():
        return ValidationResult(False, ErrorCode.MISSING_TITLE, lecture.index)

    current = lecture.assessment.kind
    if current not in (AssessmentKind.NONE, assessment.kind):
        return ValidationResult(False, ErrorCode.ASSESSMENT_CONFLICT, lecture.index)

    if passing_score is not None:
        result = validate_passing_score(passing_score)
        if not result.valid:
            return result

    return validate_assessment(assessment)


def validate_course(course: Course) -> ValidationResult:
    """Validate a whole course definition before it is persisted.

    Stops at the first failure; ``index`` is the offending lecture, except
    for quiz failures where it is the question index.
    """
    if not is_valid_code(course.course_code):
        return ValidationResult(False, ErrorCode.INVALID_COURSE_CODE)

    seen: set[str] = set()
    for lecture in course.lectures:
        result = validate_lecture(lecture)
        if not result.valid:
            return result
        if lecture.lecture_code in seen:
            return ValidationResult(
                False, ErrorCode.DUPLICATE_LECTURE_CODE, lecture.index
            )
        seen.add(lecture.lecture_code)

    return OK


def ensure_valid(result: ValidationResult) -> None:
    """Raise ``ValidationError`` when ``result`` is a failure."""
    if not result.valid:
        raise ValidationError(result.error or "invalid", index=result.index)
