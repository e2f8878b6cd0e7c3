"""Authoring validation endpoints.

Dry-run checks for authoring clients. Nothing is persisted and the External
Exam Service is never contacted.
"""

import structlog
from fastapi import APIRouter

from src.core.exceptions import ValidationError
from src.courses.schemas import SaveCourseRequest

from .schemas import (
    ValidateExamAssignmentRequest,
    ValidateQuizRequest,
    ValidationResponse,
)
from .validators import (
    ValidationResult,
    validate_course,
    validate_exam_assignment,
    validate_inline_quiz,
)


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/authoring", tags=["authoring"])


def _respond(check: str, result: ValidationResult) -> ValidationResponse:
    if not result.valid:
        logger.info("authoring_validation_failed", check=check, error=result.error)
    return ValidationResponse.from_result(result)


@router.post("/validate-quiz", response_model=ValidationResponse)
async def validate_quiz(data: ValidateQuizRequest) -> ValidationResponse:
    """Check an inline quiz (``min_5``, MCQ well-formedness)."""
    questions = [q.to_question() for q in data.questions]
    return _respond("quiz", validate_inline_quiz(questions, enabled=data.enabled))


@router.post("/validate-course", response_model=ValidationResponse)
async def validate_course_definition(data: SaveCourseRequest) -> ValidationResponse:
    """Check a course definition exactly as saving it would."""
    try:
        course = data.to_course()
    except ValidationError as e:
        return _respond("course", ValidationResult(False, e.code, e.index))
    return _respond("course", validate_course(course))


@router.post("/validate-exam-assignment", response_model=ValidationResponse)
async def validate_assignment(data: ValidateExamAssignmentRequest) -> ValidationResponse:
    """Check attaching an inline quiz or formal exam to a lecture."""
    try:
        lecture = data.lecture.to_lecture(data.lecture_index)
        assessment = data.assignment.to_assessment(data.lecture_index)
    except ValidationError as e:
        return _respond("exam_assignment", ValidationResult(False, e.code, e.index))
    return _respond(
        "exam_assignment",
        validate_exam_assignment(lecture, assessment, data.assignment.passing_score),
    )
