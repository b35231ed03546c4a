"""Cleanup service for the link shortener.

This module contains the CleanupService class which removes short links
whose expiry has passed.
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.repositories.base import RepositoryError
from shortlink.repositories.url_repository import URLRepository
from shortlink.services.exceptions import ExpiredURLCleanupError

logger = logging.getLogger(__name__)


class CleanupService:
    """
    Service for expired link removal.

    Expired rows are already unreachable through lookups; this only
    reclaims storage.
    """

    def __init__(self, url_repository: URLRepository):
        """
        Initialize the cleanup service.

        Args:
            url_repository: Repository for link data access
        """
        self.url_repository = url_repository

    async def cleanup_expired_urls(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Delete every link with ``expires_at`` at or before ``now``.

        The caller owns the transaction.

        Args:
            db: Database session
            now: Cutoff time, defaults to the current UTC time

        Returns:
            Dict with the number of deleted rows and the execution time

        Raises:
            ExpiredURLCleanupError: If the delete fails
        """
        started = time.perf_counter()
        try:
            deleted_count = await self.url_repository.delete_expired_urls(db, now=now)
        except RepositoryError as e:
            logger.error(f"Error during expired URL cleanup: {e}", exc_info=True)
            raise ExpiredURLCleanupError(f"Failed to cleanup expired URLs: {str(e)}")

        execution_time = time.perf_counter() - started
        logger.info(f"Cleanup completed: {deleted_count} URLs deleted in {execution_time:.2f}s")

        return {
            "deleted": deleted_count,
            "execution_time": execution_time,
        }

    async def get_cleanup_stats(self, db: AsyncSession) -> Dict[str, Any]:
        """
        Count links waiting for the next sweep.

        Raises:
            ExpiredURLCleanupError: If the count fails
        """
        try:
            expired_count = await self.url_repository.count_expired_urls(db)
        except RepositoryError as e:
            logger.error(f"Error getting cleanup stats: {e}")
            raise ExpiredURLCleanupError(f"Failed to get cleanup statistics: {str(e)}")

        return {"expired_urls": expired_count}
