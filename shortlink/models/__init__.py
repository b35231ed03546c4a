"""
Data models for the link shortener.

This module imports and exports all SQLModel models used in the application.
"""

from sqlmodel import SQLModel

from shortlink.models.url import (
    TTL,
    VALID_TTLS,
    CachedURL,
    ShortURL,
    ShortURLBase,
    ShortURLCreate,
    utcnow,
)

__all__ = [
    "SQLModel",
    "TTL",
    "VALID_TTLS",
    "CachedURL",
    "ShortURL",
    "ShortURLBase",
    "ShortURLCreate",
    "utcnow",
]
