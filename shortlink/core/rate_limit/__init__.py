"""Redis-backed rate limiting with memory fallback."""

from shortlink.core.rate_limit.auth import (
    build_client_auth,
    client_ip,
    custom_on_blocked,
    parse_trusted_proxies,
)
from shortlink.core.rate_limit.backends import ResilientRateLimitBackend
from shortlink.core.rate_limit.middleware import rate_limit_config, setup_rate_limiting

__all__ = [
    "ResilientRateLimitBackend",
    "build_client_auth",
    "client_ip",
    "custom_on_blocked",
    "parse_trusted_proxies",
    "rate_limit_config",
    "setup_rate_limiting",
]
