"""Tests for rate limit client identification."""

import pytest

from shortlink.core.rate_limit import build_client_auth, client_ip, parse_trusted_proxies

TRUSTED = parse_trusted_proxies(["127.0.0.1", "10.1.0.0/16"])


def make_scope(peer, forwarded_for=None):
    headers = []
    if forwarded_for is not None:
        headers.append((b"x-forwarded-for", forwarded_for.encode("latin1")))
    return {"type": "http", "client": (peer, 1234), "headers": headers}


@pytest.mark.parametrize("peer,forwarded_for,expected", [
    # Untrusted peers cannot choose their own address
    ("203.0.113.7", "198.51.100.1", "203.0.113.7"),
    ("203.0.113.7", None, "203.0.113.7"),
    # Trusted proxy: the right-most hop that is not a proxy
    ("127.0.0.1", "198.51.100.1", "198.51.100.1"),
    ("127.0.0.1", "6.6.6.6, 198.51.100.1, 10.1.2.3", "198.51.100.1"),
    ("127.0.0.1", None, "127.0.0.1"),
    ("127.0.0.1", "garbage", "127.0.0.1"),
    ("127.0.0.1", "garbage, 10.1.2.3", "10.1.2.3"),
])
def test_client_ip(peer, forwarded_for, expected):
    assert client_ip(make_scope(peer, forwarded_for), TRUSTED) == expected


def test_client_ip_without_peer():
    assert client_ip({"type": "http", "headers": []}, TRUSTED) == "unknown"


def test_unparseable_entries_match_verbatim():
    trusted = parse_trusted_proxies(["proxy.internal", " ::1 "])

    assert client_ip(make_scope("proxy.internal", "198.51.100.1"), trusted) == "198.51.100.1"
    assert client_ip(make_scope("::1", "198.51.100.2"), trusted) == "198.51.100.2"


@pytest.mark.asyncio
async def test_client_auth_uses_default_group():
    authenticate = build_client_auth(["127.0.0.1"])

    assert await authenticate(make_scope("127.0.0.1", "198.51.100.1")) == ("198.51.100.1", "default")
