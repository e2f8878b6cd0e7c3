"""LectureGate API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.assessments.evaluator import AssessmentEvaluator
from src.assessments.exam_client import ExamServiceClient
from src.authoring.router import router as authoring_router
from src.config import Settings, get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.courses.router import router as courses_router
from src.courses.service import CourseService
from src.gating.router import router as progress_router
from src.gating.service import AccessGate
from src.health import router as health_router
from src.progress.router import enrollments_router
from src.progress.service import ProgressService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    course_service: CourseService | None = None
    progress_service: ProgressService | None = None
    exam_client: ExamServiceClient | None = None
    access_gate: AccessGate | None = None


app_state = AppState()


def build_exam_client(settings: Settings) -> ExamServiceClient | None:
    """Exam service client, or None when no service is configured."""
    if not settings.exam_service_configured:
        logger.warning(
            "exam_service_not_configured",
            message="Formal exam submissions will fail with 502",
        )
        return None
    return ExamServiceClient(
        base_url=settings.exam_service_url,
        api_key=settings.exam_service_api_key,
        timeout=settings.exam_service_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    app_state.exam_client = build_exam_client(settings)

    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        app_state.course_service = CourseService(
            session=app_state.cassandra_session,
            keyspace=settings.cassandra_keyspace,
        )
        app.state.course_service = app_state.course_service
        logger.info("course_service_initialized")

        app_state.progress_service = ProgressService(
            session=app_state.cassandra_session,
            keyspace=settings.cassandra_keyspace,
        )
        app.state.progress_service = app_state.progress_service
        logger.info("progress_service_initialized")

        app_state.access_gate = AccessGate(
            progress_service=app_state.progress_service,
            course_service=app_state.course_service,
            evaluator=AssessmentEvaluator(
                app_state.exam_client,
                lenient_short_answers=settings.short_answer_lenient,
            ),
            exam_client=app_state.exam_client,
            write_retries=settings.progress_write_retries,
        )
        app.state.access_gate = app_state.access_gate
        logger.info(
            "access_gate_initialized",
            short_answer_lenient=settings.short_answer_lenient,
            write_retries=settings.progress_write_retries,
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    if app_state.exam_client is not None:
        await app_state.exam_client.aclose()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Never let Starlette render stack traces; handlers below log them instead
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course progression and assessment gating API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions.

        Structured details (``{"error": code, ...}``) are returned as-is so
        clients can branch on the code; plain details become ``message``.
        """
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
            method=request.method,
        )

        if isinstance(exc.detail, dict):
            content = dict(exc.detail)
        else:
            content = {
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
            }
        content["status_code"] = exc.status_code
        content["request_id"] = request_id

        return ORJSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle request validation errors (field list is safe to expose)."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler: log everything, expose nothing."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(courses_router)
    app.include_router(authoring_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LectureGate API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
