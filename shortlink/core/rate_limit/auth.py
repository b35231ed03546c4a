"""Client identification and blocked-request handling for rate limiting."""

import ipaddress
from typing import Iterable, Tuple, Union

from fastapi.responses import JSONResponse
from loguru import logger
from ratelimit.types import ASGIApp, Receive, Scope, Send

RATE_LIMIT_GROUP = "default"

TrustedProxies = Tuple[Union[ipaddress.IPv4Network, ipaddress.IPv6Network, str], ...]


def parse_trusted_proxies(entries: Iterable[str]) -> TrustedProxies:
    """Parse addresses and CIDR networks; other entries are matched verbatim."""
    parsed = []
    for entry in entries:
        entry = entry.strip()
        try:
            parsed.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            parsed.append(entry)
    return tuple(parsed)


def _is_trusted(host: str, trusted_proxies: TrustedProxies) -> bool:
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return host in trusted_proxies
    return any(
        not isinstance(proxy, str) and address in proxy
        for proxy in trusted_proxies
    )


def client_ip(scope: Scope, trusted_proxies: TrustedProxies = ()) -> str:
    """
    Address of the client that made the request.

    The socket peer is the client unless it is a trusted proxy. In that case
    X-Forwarded-For is read from the right, skipping trusted hops, and the
    first other address is the client. A malformed hop ends the walk.
    """
    client = scope.get("client")
    ip = client[0] if client else "unknown"
    if not _is_trusted(ip, trusted_proxies):
        return ip

    hops = []
    for name, value in scope.get("headers", []):
        if name == b"x-forwarded-for":
            hops.extend(hop.strip() for hop in value.decode("latin1").split(","))

    for hop in reversed(hops):
        try:
            ipaddress.ip_address(hop)
        except ValueError:
            break
        ip = hop
        if not _is_trusted(hop, trusted_proxies):
            break
    return ip


def build_client_auth(trusted_proxies: Iterable[str]):
    """Build the rate limiter's authenticate callable.

    Args:
        trusted_proxies: Proxy addresses or networks allowed to set X-Forwarded-For

    Returns:
        Coroutine function mapping a scope to (client IP, group)
    """
    trusted = parse_trusted_proxies(trusted_proxies)

    async def client_auth(scope: Scope) -> Tuple[str, str]:
        return client_ip(scope, trusted), RATE_LIMIT_GROUP

    return client_auth


def custom_on_blocked(retry_after: int) -> ASGIApp:
    """
    Handler for requests blocked by the rate limiter.

    Args:
        retry_after: Time in seconds to wait before retrying

    Returns:
        ASGI application answering 429 with a Retry-After header
    """
    async def app_block_handler(scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning(
            "Rate limit exceeded",
            peer=client_ip(scope),
            path=scope.get("path", ""),
            method=scope.get("method", ""),
            retry_after=retry_after,
        )

        response = JSONResponse(
            status_code=429,
            content={"detail": "rate limit exceeded, try again later"},
            headers={"Retry-After": str(retry_after)},
        )
        await response(scope, receive, send)

    return app_block_handler
