"""Test utilities for link shortener tests."""

import random
import string
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from shortlink.core.config import Settings
from shortlink.core.security import hash_manage_token, hash_password
from shortlink.models.url import ShortURL, utcnow

# Test database URL - using SQLite in-memory
TEST_SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_BASE_URL = "http://sho.rt"
TEST_FRONTEND_URL = "http://app.sho.rt"


def make_test_settings(**overrides) -> Settings:
    """Settings for an isolated app: in-memory database and cache, no Redis."""
    values = {
        "ENVIRONMENT": "testing",
        "DATABASE_URL": TEST_SQLALCHEMY_DATABASE_URL,
        "BASE_URL": TEST_BASE_URL,
        "FRONTEND_URL": TEST_FRONTEND_URL,
        "CACHE_BACKEND": "memory",
        "RATE_LIMIT_ENABLED": False,
        "RATE_LIMIT_BACKEND": "memory",
        "CLEANUP_ENABLED": False,
        "LOG_TO_FILE": False,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    domain = f"{random_string(8)}.com"
    path = random_string(12)
    return f"https://{domain}/{path}"


def create_test_url_data(
    target_url: Optional[str] = None,
    slug: Optional[str] = None,
    manage_token: str = "test-token",
    password: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Create test data dict for a ShortURL."""
    return {
        "target_url": target_url or random_url(),
        "slug": slug or random_string(8),
        "manage_token_hash": hash_manage_token(manage_token),
        "password_hash": hash_password(password) if password else None,
        "expires_at": expires_at or utcnow() + timedelta(days=1),
    }


async def create_test_url(
    db,
    target_url: Optional[str] = None,
    slug: Optional[str] = None,
    manage_token: str = "test-token",
    password: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> ShortURL:
    """Create and commit a test ShortURL in the database."""
    url = ShortURL(**create_test_url_data(
        target_url=target_url,
        slug=slug,
        manage_token=manage_token,
        password=password,
        expires_at=expires_at,
    ))
    db.add(url)
    await db.commit()
    await db.refresh(url)
    return url
