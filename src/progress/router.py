"""Enrollment API endpoints.

Enrollment normally happens elsewhere (purchase, invitation); this route
creates one directly for integrations and test environments.
"""

from fastapi import APIRouter, status

from src.core.exceptions import EngineError
from src.courses.dependencies import CourseServiceDep, handle_engine_error

from .dependencies import ProgressServiceDep, handle_progress_error
from .schemas import EnrollmentResponse, EnrollRequest


enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll a learner in a course",
)
async def enroll(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    course_service: CourseServiceDep,
) -> EnrollmentResponse:
    """Create an enrollment; 409 when it already exists."""
    try:
        await course_service.require_course(data.course_id)
    except EngineError as e:
        raise handle_engine_error(e) from e

    try:
        enrollment = await progress_service.enroll_learner(data.learner_id, data.course_id)
        return EnrollmentResponse.from_entity(enrollment)
    except EngineError as e:
        raise handle_progress_error(e) from e
