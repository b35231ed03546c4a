"""Main application module.

This module builds the FastAPI application: routes, middleware, exception
handlers and the startup/shutdown lifecycle of the database engine, cache,
rate limiter and scheduler.
"""

import time
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shortlink.api import build_api_router
from shortlink.cache.factory import create_cache
from shortlink.core.config import CacheBackendType, Settings, settings as default_settings
from shortlink.core.logging import setup_logging
from shortlink.core.rate_limit import setup_rate_limiting
from shortlink.core.redis import RedisClientManager
from shortlink.db.base import create_session_factory, get_engine, init_models
from shortlink.middleware.logging import LoggingMiddleware
from shortlink.scheduler import SchedulerService


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Long-lived resources are created in the startup hook and kept on
    ``app.state`` so that every application instance owns its own engine,
    cache and rate limit counters.
    """
    settings = settings or default_settings
    logger = setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    app.state.settings = settings
    app.state.rate_limit_backend = None
    app.state.redis_manager = None
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.RATE_LIMIT_ENABLED:
        setup_rate_limiting(app, settings)
    else:
        logger.info("Rate limiting is disabled in settings")

    # Added last so it wraps everything, including rate limited responses
    if settings.REQUEST_LOGGING_ENABLED:
        app.add_middleware(LoggingMiddleware, trusted_proxies=settings.TRUSTED_PROXIES)

    app.include_router(build_api_router(settings.API_PREFIX))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with detailed information."""
        # Submitted values are not echoed back; they may hold passwords
        errors = [
            {key: value for key, value in error.items() if key != "input"}
            for error in exc.errors()
        ]
        logger.info("Request validation error", path=request.url.path, errors=len(errors))
        return JSONResponse(
            status_code=400,
            content={"detail": "Validation error", "errors": jsonable_encoder(errors)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler to catch and log all unhandled exceptions."""
        error_id = f"error-{time.time()}"

        logger.opt(exception=exc).error(
            f"Unhandled exception in {request.method} {request.url.path}",
            error_id=error_id,
            url=str(request.url),
            method=request.method,
            path_params=request.path_params,
            client_host=request.client.host if request.client else None,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error occurred",
                "error_id": error_id,
                "message": str(exc) if settings.DEBUG else "Internal server error",
            },
        )

    @app.on_event("startup")
    async def startup_event():
        """Run startup tasks."""
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT.value}")

        engine = get_engine(settings)
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        await init_models(engine)
        logger.info("Database schema ready")

        if settings.CACHE_ENABLED and settings.CACHE_BACKEND == CacheBackendType.REDIS:
            app.state.redis_manager = RedisClientManager(settings)
            if not await app.state.redis_manager.ping():
                logger.warning("Redis unavailable at startup, lookups will fall back to the database")
        app.state.cache = create_cache(settings, app.state.redis_manager)

        if app.state.rate_limit_backend is not None:
            logger.info("Initializing rate limit backend")
            await app.state.rate_limit_backend.initialize()

        if settings.CLEANUP_ENABLED:
            scheduler = SchedulerService(app.state.session_factory, settings)
            scheduler.start()
            app.state.scheduler = scheduler

    @app.on_event("shutdown")
    async def shutdown_event():
        """Run cleanup tasks."""
        logger.info(f"Shutting down {settings.APP_NAME}")

        if app.state.scheduler is not None:
            app.state.scheduler.shutdown()
            app.state.scheduler = None

        await app.state.cache.close()

        if app.state.rate_limit_backend is not None:
            await app.state.rate_limit_backend.close()

        if app.state.redis_manager is not None:
            await app.state.redis_manager.close()

        await app.state.engine.dispose()
        logger.info("Shutdown complete")

    return app


app = create_app()
