# Core infrastructure
from src.core.context import (
    GatingContext,
    clear_context,
    get_context,
    get_course_id,
    get_learner_id,
    get_request_id,
    get_trace_id,
    set_request_id,
    set_trace_id,
)
from src.core.exceptions import (
    EngineError,
    NotFoundError,
    ProgressRegressionError,
    UpstreamError,
    ValidationError,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware


__all__ = [
    "EngineError",
    "GatingContext",
    "NotFoundError",
    "ProgressRegressionError",
    "RequestContextMiddleware",
    "UpstreamError",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_course_id",
    "get_learner_id",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "set_request_id",
    "set_trace_id",
]
