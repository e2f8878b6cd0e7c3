"""Course content API endpoints.

Provides routes for:
- Saving and reading course definitions
- Learner-safe course view
- Auto-quiz replacement and exam assignment per lecture
"""

from uuid import UUID

from fastapi import APIRouter, Path, status

from src.core.exceptions import EngineError

from .dependencies import CourseServiceDep, handle_engine_error
from .schemas import (
    AutoQuizRequest,
    CourseResponse,
    ExamAssignmentRequest,
    LearnerCourseResponse,
    LectureResponse,
    SaveCourseRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])

LectureIndex = Path(..., ge=0, description="Lecture position in the course")


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or replace a course definition",
)
async def save_course(
    data: SaveCourseRequest,
    course_service: CourseServiceDep,
) -> CourseResponse:
    """Validate the whole definition, then persist it in one batch."""
    try:
        course = await course_service.save_course(data.to_course())
        return CourseResponse.from_entity(course)
    except EngineError as e:
        raise handle_engine_error(e) from e


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course definition (authoring view)",
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
) -> CourseResponse:
    try:
        course = await course_service.require_course(course_id)
        return CourseResponse.from_entity(course)
    except EngineError as e:
        raise handle_engine_error(e) from e


@router.get(
    "/{course_id}/learner-view",
    response_model=LearnerCourseResponse,
    summary="Get course as shown to learners",
)
async def get_learner_course(
    course_id: UUID,
    course_service: CourseServiceDep,
) -> LearnerCourseResponse:
    """Course without lecture codes or quiz answers."""
    try:
        course = await course_service.require_course(course_id)
        return LearnerCourseResponse.from_entity(course)
    except EngineError as e:
        raise handle_engine_error(e) from e


@router.put(
    "/{course_id}/lectures/{lecture_index}/auto-quiz",
    response_model=LectureResponse,
    summary="Replace a lecture's auto-quiz",
)
async def put_auto_quiz(
    course_id: UUID,
    data: AutoQuizRequest,
    course_service: CourseServiceDep,
    lecture_index: int = LectureIndex,
) -> LectureResponse:
    """Enabled quizzes need at least 5 questions (``min_5``)."""
    try:
        lecture = await course_service.set_inline_quiz(
            course_id, lecture_index, data.to_quiz()
        )
        return LectureResponse.from_entity(lecture)
    except EngineError as e:
        raise handle_engine_error(e) from e


@router.put(
    "/{course_id}/lectures/{lecture_index}/exam",
    response_model=LectureResponse,
    summary="Attach a formal exam to a lecture",
)
async def put_exam(
    course_id: UUID,
    data: ExamAssignmentRequest,
    course_service: CourseServiceDep,
    lecture_index: int = LectureIndex,
) -> LectureResponse:
    try:
        lecture = await course_service.assign_exam(
            course_id, lecture_index, data.exam_id, data.passing_score
        )
        return LectureResponse.from_entity(lecture)
    except EngineError as e:
        raise handle_engine_error(e) from e


@router.delete(
    "/{course_id}/lectures/{lecture_index}/exam",
    response_model=LectureResponse,
    summary="Detach the lecture's assessment",
)
async def delete_exam(
    course_id: UUID,
    course_service: CourseServiceDep,
    lecture_index: int = LectureIndex,
) -> LectureResponse:
    try:
        lecture = await course_service.detach_assessment(course_id, lecture_index)
        return LectureResponse.from_entity(lecture)
    except EngineError as e:
        raise handle_engine_error(e) from e
