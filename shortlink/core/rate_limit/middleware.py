"""FastAPI rate limiting middleware setup."""

import re

from fastapi import FastAPI
from loguru import logger
from ratelimit import RateLimitMiddleware, Rule

from shortlink.core.config import RateLimitBackendType, Settings
from shortlink.core.rate_limit.auth import RATE_LIMIT_GROUP, build_client_auth, custom_on_blocked
from shortlink.core.rate_limit.backends import ResilientRateLimitBackend

# Redirect and unlock draw from one per-IP budget
RATE_LIMIT_ZONE = "links"


def rate_limit_config(settings: Settings):
    """Map the limited path patterns to their rules."""
    rule = Rule(minute=settings.RATE_LIMIT_PER_MINUTE, group=RATE_LIMIT_GROUP, zone=RATE_LIMIT_ZONE)
    api_prefix = re.escape(settings.API_PREFIX.rstrip("/"))
    return {
        rf"^{api_prefix}/urls/[^/]+/unlock$": [rule],
        # Single path segment; API and health routes have more than one
        r"^/[^/]+$": [rule],
    }


def setup_rate_limiting(app: FastAPI, settings: Settings) -> ResilientRateLimitBackend:
    """Add the rate limiting middleware and keep its backend on ``app.state``.

    Args:
        app: FastAPI application instance
        settings: Application settings

    Returns:
        ResilientRateLimitBackend, initialized and closed by the app lifecycle
    """
    backend = ResilientRateLimitBackend(
        settings.REDIS_URI,
        settings=settings,
        use_redis=settings.RATE_LIMIT_BACKEND == RateLimitBackendType.REDIS,
    )
    app.state.rate_limit_backend = backend

    app.add_middleware(
        RateLimitMiddleware,
        authenticate=build_client_auth(settings.TRUSTED_PROXIES),
        backend=backend,
        config=rate_limit_config(settings),
        on_blocked=custom_on_blocked,
    )

    logger.info(
        "Rate limiting middleware added",
        per_minute=settings.RATE_LIMIT_PER_MINUTE,
        backend=settings.RATE_LIMIT_BACKEND.value,
    )
    return backend
