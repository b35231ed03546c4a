"""HTTP middleware for the link shortener."""

from shortlink.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
