"""Routes package initialization.

This module assembles the route collection for the application.
"""

from fastapi import APIRouter

from shortlink.api.routes import health, redirect, shortener


def build_api_router(api_prefix: str) -> APIRouter:
    """Combine all routers; API routes live under ``api_prefix``."""
    api_router = APIRouter()

    api_router.include_router(shortener.router, prefix=api_prefix)
    api_router.include_router(health.router, prefix=api_prefix)

    # Short links live directly at /{slug}; included last so the
    # catch-all path never shadows an API route
    api_router.include_router(redirect.router)

    return api_router


__all__ = ["build_api_router"]
