"""FastAPI dependencies for the access gate.

Provides dependency injection for:
- Access gate
- Denial and error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.assessments.exam_client import ExamAttemptRejectedError
from src.core.exceptions import EngineError, NotFoundError, ValidationError

from .results import Denied
from .service import AccessGate


async def get_access_gate(request: Request) -> AccessGate:
    """Get access gate from app state."""
    app_state = request.app.state
    if not getattr(app_state, "access_gate", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Access gate not available",
        )
    return app_state.access_gate


AccessGateDep = Annotated[AccessGate, Depends(get_access_gate)]


def handle_denial(denied: Denied) -> HTTPException:
    """Denials map to 403 with the reason callers branch on."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": True, "reason": denied.reason.value},
    )


def handle_gate_error(error: EngineError) -> HTTPException:
    """Convert gate errors to HTTP exceptions.

    Upstream failures (exam service, lost progress writes) become 502 and a
    refused exam attempt 409; progress is left unchanged in every case.
    """
    if isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ExamAttemptRejectedError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_502_BAD_GATEWAY

    return HTTPException(
        status_code=status_code,
        detail={"error": error.code, "message": error.message},
    )
