"""Health check endpoints."""

from fastapi import APIRouter, Request

from src.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness check - the gate and its stores are wired."""
    settings = get_settings()
    gate_ready = getattr(request.app.state, "access_gate", None) is not None
    return {
        "status": "ready" if gate_ready else "degraded",
        "environment": settings.environment,
        "database": gate_ready,
        "exam_service": settings.exam_service_configured,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
