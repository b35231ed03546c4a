"""Repository layer for the link shortener.

This module provides repository classes that abstract database operations
and implement the Repository pattern for clean separation of concerns.
"""

from shortlink.repositories.base import (
    BaseRepository,
    DuplicateEntityError,
    RepositoryError,
)
from shortlink.repositories.url_repository import URLRepository

__all__ = [
    "BaseRepository",
    "DuplicateEntityError",
    "RepositoryError",
    "URLRepository",
]
