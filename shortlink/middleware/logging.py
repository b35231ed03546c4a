"""
Request logging middleware for FastAPI using Loguru.

Every response carries an ``X-Request-ID`` header and produces one log line
with the method, path, status, duration and client address.
"""

import time
import uuid
from contextvars import ContextVar
from typing import Iterable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from shortlink.core.rate_limit.auth import client_ip, parse_trusted_proxies

# Context variable to store request ID across async context
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one structured line per request."""

    def __init__(self, app: ASGIApp, trusted_proxies: Iterable[str] = ()):
        super().__init__(app)
        self.trusted_proxies = parse_trusted_proxies(trusted_proxies)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        start_time = time.perf_counter()

        try:
            with logger.contextualize(request_id=request_id):
                response = await call_next(request)
        finally:
            request_id_var.reset(token)

        process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "{method} {path} {status_code} {process_time_ms}ms",
            request_id=request_id,
            client_ip=client_ip(request.scope, self.trusted_proxies),
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time_ms=process_time_ms,
        )
        return response
