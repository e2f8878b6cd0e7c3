"""Learner progression API endpoints.

Provides routes for:
- Course status (per-lecture statuses, percentage, resume point)
- View authorization and content view recording
- Quiz/exam submission and attempt history
- Assessment info
"""

from uuid import UUID

from fastapi import APIRouter, Query

from src.core.exceptions import EngineError
from src.progress.schemas import (
    AttemptListResponse,
    CourseStatusResponse,
    LectureProgressResponse,
    QuizAttemptResponse,
)

from .dependencies import AccessGateDep, handle_denial, handle_gate_error
from .results import Denied
from .schemas import (
    AccessResponse,
    AssessmentInfoResponse,
    DeniedResponse,
    RecordViewRequest,
    SubmitRequest,
    course_status_response,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])

DENIED_RESPONSES = {403: {"model": DeniedResponse, "description": "Access denied"}}

LectureIndexQuery = Query(..., ge=0, description="Lecture position in the course")


@router.get(
    "/status",
    response_model=CourseStatusResponse,
    summary="Get per-lecture status for a learner",
)
async def get_course_status(
    gate: AccessGateDep,
    course_id: UUID = Query(...),
    learner_id: UUID = Query(...),
) -> CourseStatusResponse:
    """Every lecture is ``locked`` when the learner is not enrolled."""
    try:
        return course_status_response(await gate.course_status(learner_id, course_id))
    except EngineError as e:
        raise handle_gate_error(e) from e


@router.get(
    "/authorize-view",
    response_model=AccessResponse,
    responses=DENIED_RESPONSES,
    summary="Check a learner may open a lecture",
)
async def authorize_view(
    gate: AccessGateDep,
    course_id: UUID = Query(...),
    learner_id: UUID = Query(...),
    lecture_index: int = LectureIndexQuery,
) -> AccessResponse:
    try:
        outcome = await gate.authorize_view(learner_id, course_id, lecture_index)
    except EngineError as e:
        raise handle_gate_error(e) from e

    if isinstance(outcome, Denied):
        raise handle_denial(outcome)
    return AccessResponse(lecture_index=lecture_index, status=outcome.status)


@router.post(
    "/view",
    response_model=AccessResponse,
    responses=DENIED_RESPONSES,
    summary="Record a content view",
)
async def record_view(data: RecordViewRequest, gate: AccessGateDep) -> AccessResponse:
    """``fully_viewed`` marks the lecture's content completed."""
    try:
        outcome = await gate.record_content_view(
            data.learner_id,
            data.course_id,
            data.lecture_index,
            time_spent=data.time_spent,
            fully_viewed=data.fully_viewed,
        )
    except EngineError as e:
        raise handle_gate_error(e) from e

    if isinstance(outcome, Denied):
        raise handle_denial(outcome)
    return AccessResponse(
        lecture_index=data.lecture_index,
        status=outcome.status,
        progress=LectureProgressResponse.from_entity(outcome.progress)
        if outcome.progress
        else None,
    )


@router.post(
    "/submit",
    response_model=QuizAttemptResponse,
    responses=DENIED_RESPONSES,
    summary="Submit answers to a lecture's assessment",
)
async def submit(data: SubmitRequest, gate: AccessGateDep) -> QuizAttemptResponse:
    """Score the answers and record progress.

    403 ``{error: true, reason}`` with reason ``NotEnrolled``, ``Locked``
    or ``NoAssessment``; 409 when the exam service refuses the attempt.
    """
    try:
        outcome = await gate.authorize_submission(
            data.learner_id, data.course_id, data.lecture_index, data.answers
        )
    except EngineError as e:
        raise handle_gate_error(e) from e

    if isinstance(outcome, Denied):
        raise handle_denial(outcome)
    return QuizAttemptResponse.from_entity(outcome)


@router.get(
    "/attempts",
    response_model=AttemptListResponse,
    responses=DENIED_RESPONSES,
    summary="List attempts on a lecture (newest first)",
)
async def list_attempts(
    gate: AccessGateDep,
    course_id: UUID = Query(...),
    learner_id: UUID = Query(...),
    lecture_index: int = LectureIndexQuery,
) -> AttemptListResponse:
    try:
        outcome = await gate.list_attempts(learner_id, course_id, lecture_index)
    except EngineError as e:
        raise handle_gate_error(e) from e

    if isinstance(outcome, Denied):
        raise handle_denial(outcome)
    return AttemptListResponse(
        attempts=[QuizAttemptResponse.from_entity(a) for a in outcome],
        total=len(outcome),
    )


@router.get(
    "/assessment",
    response_model=AssessmentInfoResponse,
    responses=DENIED_RESPONSES,
    summary="Describe a lecture's assessment",
)
async def get_assessment_info(
    gate: AccessGateDep,
    course_id: UUID = Query(...),
    learner_id: UUID = Query(...),
    lecture_index: int = LectureIndexQuery,
) -> AssessmentInfoResponse:
    try:
        outcome = await gate.assessment_info(learner_id, course_id, lecture_index)
    except EngineError as e:
        raise handle_gate_error(e) from e

    if isinstance(outcome, Denied):
        raise handle_denial(outcome)
    return AssessmentInfoResponse.from_info(outcome)
