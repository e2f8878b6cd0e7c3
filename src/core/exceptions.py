"""Error taxonomy shared by the gating engine.

Gating denials (not enrolled, locked, no assessment) are deliberately absent:
they are typed results, see ``src.gating.results``.
"""


class EngineError(Exception):
    """Base error with a stable machine-readable code."""

    def __init__(self, message: str, code: str = "engine_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(EngineError):
    """Authoring-time structural violation.

    ``index`` points at the offending lecture or question when known.
    """

    def __init__(
        self,
        code: str,
        message: str | None = None,
        index: int | None = None,
    ):
        self.index = index
        super().__init__(message or code, code)


class ProgressRegressionError(ValidationError):
    """A progress write would reset ``completed`` or ``quiz_passed``."""

    def __init__(self, message: str = "Progress flags cannot be reset"):
        super().__init__("progress_regression", message)


class NotFoundError(EngineError):
    """Unknown course, lecture or exam reference."""

    def __init__(self, message: str = "Not found", code: str = "not_found"):
        super().__init__(message, code)


class UpstreamError(EngineError):
    """A collaborator failed or answered with malformed data."""

    def __init__(self, message: str = "Upstream failure", code: str = "upstream_error"):
        super().__init__(message, code)
