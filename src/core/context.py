"""Request context management using contextvars.

Each request gets a unique ID plus the learner and course it concerns, so
every log line emitted while gating a request can be tied back to it
without threading those values through every call.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
learner_id_var: ContextVar[str | None] = ContextVar("learner_id", default=None)
course_id_var: ContextVar[str | None] = ContextVar("course_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_learner_id() -> str | None:
    """Get the learner the current request acts for."""
    return learner_id_var.get()


def get_course_id() -> str | None:
    """Get the course the current request concerns."""
    return course_id_var.get()


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    values = {
        "request_id": get_request_id(),
        "learner_id": get_learner_id(),
        "course_id": get_course_id(),
        "trace_id": get_trace_id(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent leakage between requests.
    """
    request_id_var.set("")
    learner_id_var.set(None)
    course_id_var.set(None)
    trace_id_var.set(None)


class GatingContext:
    """Context manager binding a learner/course pair for a block of work.

    Usage:
        with GatingContext(learner_id, course_id):
            logger.info("lecture_view_allowed")  # includes learner_id, course_id
    """

    def __init__(
        self,
        learner_id: str | UUID | None,
        course_id: str | UUID | None,
    ) -> None:
        self.learner_id = learner_id
        self.course_id = course_id
        self._tokens: list[tuple[ContextVar[Any], Token[Any]]] = []

    def __enter__(self) -> "GatingContext":
        """Enter context and set variables."""
        if self.learner_id is not None:
            self._tokens.append(
                (learner_id_var, learner_id_var.set(str(self.learner_id)))
            )
        if self.course_id is not None:
            self._tokens.append((course_id_var, course_id_var.set(str(self.course_id))))
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
