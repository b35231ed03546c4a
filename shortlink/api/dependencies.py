"""API dependencies for FastAPI.

This module provides dependency injection functions for FastAPI endpoints
to access settings, the cache and service instances. Long-lived objects
are created at startup and read from ``app.state``.
"""

from fastapi import Depends, Request

from shortlink.cache.strategies import URLCache
from shortlink.core.config import Settings
from shortlink.repositories.url_repository import URLRepository
from shortlink.services.cleanup import CleanupService
from shortlink.services.shortener import LinkService


def get_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


async def get_url_repository():
    """Get an instance of the URL repository."""
    return URLRepository()


def get_cache(request: Request) -> URLCache:
    return request.app.state.cache


async def get_link_service(
    url_repo: URLRepository = Depends(get_url_repository),
    cache: URLCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> LinkService:
    """Get an instance of the link service."""
    return LinkService(
        url_repository=url_repo,
        cache=cache,
        base_url=settings.BASE_URL,
        auto_slug_length=settings.AUTO_SLUG_LENGTH,
        auto_slug_max_attempts=settings.AUTO_SLUG_MAX_ATTEMPTS,
        max_collision_tries=settings.SLUG_MAX_COLLISION_TRIES,
        manage_token_length=settings.MANAGE_TOKEN_LENGTH,
    )


async def get_cleanup_service(
    url_repo: URLRepository = Depends(get_url_repository),
) -> CleanupService:
    """Get an instance of the cleanup service."""
    return CleanupService(url_repository=url_repo)
