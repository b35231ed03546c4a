"""Health check endpoints for monitoring application status."""

import time

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.api.dependencies import get_cleanup_service, get_settings
from shortlink.core.config import Settings
from shortlink.db.base import DatabaseHealthCheck
from shortlink.db.session import get_db
from shortlink.services.cleanup import CleanupService
from shortlink.services.exceptions import CleanupError

router = APIRouter(tags=["health"])


async def _redis_status(request: Request):
    """Ping Redis if the application uses it, else None."""
    redis_manager = getattr(request.app.state, "redis_manager", None)
    if redis_manager is None:
        return None

    start_time = time.perf_counter()
    if await redis_manager.ping():
        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }
    return {"status": "unhealthy", "error": "Redis ping failed"}


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Get system health status",
    response_description="Health status of all system components",
)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    cleanup_service: CleanupService = Depends(get_cleanup_service),
):
    """Check health of all system components."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT.value,
        "timestamp": time.time(),
        "components": {},
    }

    database = await DatabaseHealthCheck.check_connection(db)
    health_status["components"]["database"] = database
    if database["status"] != "healthy":
        health_status["status"] = "degraded"

    redis_status = await _redis_status(request)
    if redis_status is not None:
        health_status["components"]["redis"] = redis_status
        if redis_status["status"] != "healthy":
            # Redirects still work from the database
            health_status["status"] = "degraded"

    rate_limit_backend = getattr(request.app.state, "rate_limit_backend", None)
    if rate_limit_backend is not None:
        health_status["components"]["rate_limit"] = {"backend": rate_limit_backend.backend_name}

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None:
        cleanup = {"running": scheduler.is_running}
        if database["status"] == "healthy":
            try:
                cleanup.update(await cleanup_service.get_cleanup_stats(db))
            except CleanupError as e:
                cleanup["error"] = str(e)
        health_status["components"]["cleanup"] = cleanup

    return health_status


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness probe",
    response_description="Application readiness status",
)
async def readiness_probe(db: AsyncSession = Depends(get_db)):
    """Check if application is ready to handle requests."""
    database = await DatabaseHealthCheck.check_connection(db)
    components_status = {"api": True, "database": database["status"] == "healthy"}

    return {
        "ready": all(components_status.values()),
        "components": components_status,
    }


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    response_description="Application liveness status",
)
async def liveness_probe():
    """Simple check that application is running."""
    return {"alive": True}
