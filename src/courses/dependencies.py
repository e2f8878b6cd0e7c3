"""FastAPI dependencies for course content.

Provides dependency injection for:
- Course service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.core.exceptions import EngineError, NotFoundError, ValidationError

from .service import CourseService


async def get_course_service(request: Request) -> CourseService:
    """Get course service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "course_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return app_state.course_service


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


def handle_engine_error(error: EngineError) -> HTTPException:
    """Convert engine errors to HTTP exceptions.

    Validation failures keep their code (and index) in the detail so
    authoring clients can point at the offending lecture or question.
    """
    if isinstance(error, ValidationError):
        detail: dict[str, object] = {"error": error.code}
        if error.index is not None:
            detail["index"] = error.index
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    if isinstance(error, NotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": error.code, "message": error.message},
        )

    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": error.code, "message": error.message},
    )
