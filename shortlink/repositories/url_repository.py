"""URL Repository for the link shortener.

This module provides the URLRepository class for database operations related to ShortURL models.
Following the Repository pattern, it abstracts database interactions for short links.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.models.url import ShortURL, ShortURLCreate, utcnow
from shortlink.repositories.base import BaseRepository, DuplicateEntityError, RepositoryError


class URLRepository(BaseRepository[ShortURL, ShortURLCreate]):
    """
    Repository for ShortURL model database operations.

    Slug uniqueness and the conditional early-expire update are enforced
    here by the database rather than by locks in the application.
    """

    def __init__(self):
        super().__init__(ShortURL)

    async def create_short_url(
        self,
        db: AsyncSession,
        data: Union[ShortURLCreate, Dict[str, Any]]
    ) -> ShortURL:
        """
        Create a new short link entry.

        Args:
            db: Database session
            data: Short link data (either as a ShortURLCreate model or dictionary)

        Returns:
            The created ShortURL entity

        Raises:
            DuplicateEntityError: If the slug already exists
            RepositoryError: On other database errors
        """
        slug = data.slug if isinstance(data, ShortURLCreate) else data.get("slug")
        try:
            return await self.create(db, data)
        except IntegrityError as e:
            raise DuplicateEntityError(self.model_type, "slug", slug) from e

    async def get_by_slug(self, db: AsyncSession, slug: str) -> Optional[ShortURL]:
        """
        Find a link by its slug, expired or not.

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = select(self.model_type).where(self.model_type.slug == slug)
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving URL by slug: {e}") from e

    async def get_active_by_slug(
        self,
        db: AsyncSession,
        slug: str,
        now: Optional[datetime] = None
    ) -> Optional[ShortURL]:
        """
        Find a non-expired link by its slug.

        Returns:
            The ShortURL if found and still live, None otherwise

        Raises:
            RepositoryError: On database errors
        """
        now = now or utcnow()
        try:
            query = select(self.model_type).where(
                and_(
                    self.model_type.slug == slug,
                    self.model_type.expires_at > now,
                )
            )
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error retrieving active URL by slug: {e}") from e

    async def slug_exists(self, db: AsyncSession, slug: str) -> bool:
        """
        Check whether a slug is taken. Expired rows that have not been
        swept yet still hold their slug.

        Raises:
            RepositoryError: On database errors
        """
        return await self.exists(db, slug=slug)

    async def expire_by_slug(
        self,
        db: AsyncSession,
        slug: str,
        manage_token_hash: str,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Set expires_at to now if the token hash matches and the link is still live.

        Returns:
            True if a row was updated, False for a wrong token, an unknown
            slug or an already expired link

        Raises:
            RepositoryError: On database errors
        """
        now = now or utcnow()
        try:
            stmt = (
                update(self.model_type)
                .where(
                    and_(
                        self.model_type.slug == slug,
                        self.model_type.manage_token_hash == manage_token_hash,
                        self.model_type.expires_at > now,
                    )
                )
                .values(expires_at=now)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return result.rowcount > 0
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error expiring URL: {e}") from e

    async def delete_expired_urls(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Delete every expired link in a single statement.

        Returns:
            Number of deleted links

        Raises:
            RepositoryError: On database errors
        """
        now = now or utcnow()
        return await self.bulk_delete(db, self.model_type.expires_at <= now)

    async def count_expired_urls(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Count links that are expired but not yet swept.

        Raises:
            RepositoryError: On database errors
        """
        now = now or utcnow()
        try:
            query = (
                select(func.count())
                .select_from(self.model_type)
                .where(self.model_type.expires_at <= now)
            )
            result = await db.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Error counting expired URLs: {e}") from e
