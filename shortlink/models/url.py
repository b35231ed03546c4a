"""Short link data models.

This module defines the ShortURL table, the TTL whitelist and the
CachedURL projection stored in the cache.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel
from sqlalchemy import DateTime, Index, Text
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TTL(str, Enum):
    """Lifetimes a link can be created with."""
    ONE_HOUR = "1h"
    ONE_DAY = "24h"
    ONE_WEEK = "168h"
    ONE_MONTH = "720h"
    ONE_YEAR = "8760h"


VALID_TTLS: Dict[TTL, timedelta] = {
    TTL.ONE_HOUR: timedelta(hours=1),
    TTL.ONE_DAY: timedelta(days=1),
    TTL.ONE_WEEK: timedelta(days=7),
    TTL.ONE_MONTH: timedelta(days=30),
    TTL.ONE_YEAR: timedelta(days=365),
}


class CachedURL(BaseModel):
    """
    Payload stored in the cache.

    Holds everything needed to serve a redirect or a password gate
    without reading the database.
    """
    target_url: str
    protected: bool = False
    password_hash: Optional[str] = None


class ShortURLBase(SQLModel):
    """Base model for short link data."""

    slug: str = Field(
        max_length=100,
        unique=True,
        index=True,
        description="Unique identifier appended to the base URL",
    )
    target_url: str = Field(
        sa_type=Text,
        description="The long URL to redirect to",
    )
    password_hash: Optional[str] = Field(
        default=None,
        max_length=60,
        description="bcrypt hash of the access password, null when unprotected",
    )
    manage_token_hash: str = Field(
        max_length=64,
        description="SHA-256 hex digest of the management token",
    )
    expires_at: datetime = Field(
        sa_type=DateTime,
        description="The link is live only while the current time is before this",
    )


class ShortURL(ShortURLBase, table=True):
    """
    Short link record.

    Created by the shorten endpoint, moved to "expired" by an early expire
    request and deleted by the periodic cleanup job once expired.
    """

    __tablename__ = "short_urls"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        sa_type=DateTime,
        default_factory=utcnow,
        description="Timestamp when this short link was created",
    )

    __table_args__ = (
        Index("ix_short_urls_expires_at", "expires_at"),
    )

    @property
    def is_protected(self) -> bool:
        return self.password_hash is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the link has expired.

        Returns:
            bool: True once the current time has reached expires_at
        """
        now = now or utcnow()
        return now >= self.expires_at

    def remaining_ttl(self, now: Optional[datetime] = None) -> timedelta:
        """Time left before the link expires (negative once expired)."""
        now = now or utcnow()
        return self.expires_at - now

    def to_cached(self) -> CachedURL:
        """Project the record into the cache payload."""
        return CachedURL(
            target_url=self.target_url,
            protected=self.is_protected,
            password_hash=self.password_hash,
        )


class ShortURLCreate(ShortURLBase):
    """Schema for creating a new short link."""
    pass
