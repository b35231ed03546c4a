"""Link shortening service.

This module contains the LinkService class which implements business logic
for creating short links, resolving them through the cache, unlocking
password-protected links and expiring links early.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union
from urllib.parse import urlsplit

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from shortlink.cache.strategies import CacheError, URLCache
from shortlink.core import security
from shortlink.core.config import settings
from shortlink.db.session import db_transaction
from shortlink.models.url import TTL, VALID_TTLS, CachedURL, ShortURL, utcnow
from shortlink.repositories.base import DuplicateEntityError
from shortlink.repositories.url_repository import URLRepository
from shortlink.services.exceptions import (
    InvalidManageTokenError,
    InvalidPasswordError,
    InvalidSlugError,
    InvalidTTLError,
    InvalidURLError,
    SlugGenerationError,
    SlugUnavailableError,
    URLNotFoundError,
)

logger = logging.getLogger(__name__)

SLUG_MIN_LENGTH = 5
SLUG_MAX_LENGTH = 50
SLUG_PATTERN = re.compile(rf"[A-Za-z0-9-]{{{SLUG_MIN_LENGTH},{SLUG_MAX_LENGTH}}}")


def is_valid_slug(slug: Optional[str]) -> bool:
    """Accept exactly 5 to 50 letters, digits or hyphens."""
    return bool(slug) and SLUG_PATTERN.fullmatch(slug) is not None


def is_valid_target_url(url: str) -> bool:
    """Only absolute http(s) URLs with a host can be shortened."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


@dataclass(frozen=True)
class CreateResult:
    """Outcome of a create call; ``manage_token`` is never stored in plaintext."""
    slug: str
    short_url: str
    expires_at: datetime
    protected: bool
    manage_token: str


@dataclass(frozen=True)
class SlugAvailability:
    available: bool
    suggestion: Optional[str] = None


class LinkService:
    """
    Service for short link business logic.

    Reads go through the cache first and fall back to the repository on a
    miss or a cache failure (cache-aside). Writes go to the repository and
    then update the cache on a best-effort basis.
    """

    def __init__(
        self,
        url_repository: URLRepository,
        cache: URLCache,
        base_url: Optional[str] = None,
        auto_slug_length: Optional[int] = None,
        auto_slug_max_attempts: Optional[int] = None,
        max_collision_tries: Optional[int] = None,
        manage_token_length: Optional[int] = None,
    ):
        """
        Initialize the link service.

        Args:
            url_repository: Repository for link data access
            cache: Cache backend for resolved links
            base_url: Public origin used to build short URLs
        """
        self.url_repository = url_repository
        self.cache = cache
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")
        self.auto_slug_length = auto_slug_length or settings.AUTO_SLUG_LENGTH
        self.auto_slug_max_attempts = auto_slug_max_attempts or settings.AUTO_SLUG_MAX_ATTEMPTS
        self.max_collision_tries = max_collision_tries or settings.SLUG_MAX_COLLISION_TRIES
        self.manage_token_length = manage_token_length or settings.MANAGE_TOKEN_LENGTH

    async def create(
        self,
        db: AsyncSession,
        target_url: str,
        ttl: Union[TTL, str],
        slug: Optional[str] = None,
        password: Optional[str] = None,
    ) -> CreateResult:
        """
        Create a short link.

        Args:
            db: Database session
            target_url: The URL to redirect to
            ttl: One of the TTL values
            slug: Optional requested slug; a suffixed variant is used if it is taken
            password: Optional password gating the redirect

        Returns:
            CreateResult: including the management token, shown only here

        Raises:
            InvalidURLError: If the target URL is not http(s)
            InvalidTTLError: If ttl is not an allowed value
            InvalidSlugError: If the requested slug has an invalid format
            SlugUnavailableError: If the slug and its alternatives are taken
            SlugGenerationError: If no free random slug was found
        """
        target_url = str(target_url)
        if not is_valid_target_url(target_url):
            raise InvalidURLError("target_url must be a valid http or https URL")

        duration = self._ttl_duration(ttl)
        resolved_slug = await self._resolve_slug(db, slug)

        password_hash = None
        if password:
            password_hash = await run_in_threadpool(security.hash_password, password)

        manage_token, manage_token_hash = security.generate_manage_token(self.manage_token_length)

        now = utcnow()
        url_data = {
            "slug": resolved_slug,
            "target_url": target_url,
            "password_hash": password_hash,
            "manage_token_hash": manage_token_hash,
            "expires_at": now + duration,
            "created_at": now,
        }

        try:
            url = await self._store_url(db, url_data)
        except DuplicateEntityError as e:
            # Lost a race for the same slug between the check and the insert
            logger.warning(f"Slug '{resolved_slug}' was taken concurrently: {e}")
            raise SlugUnavailableError(f"Slug '{resolved_slug}' is not available")

        try:
            await self.cache.set(url.slug, url.to_cached(), duration)
        except CacheError as e:
            logger.warning(f"Failed to pre-warm cache for slug '{url.slug}': {e}")

        logger.info(f"Created short link '{url.slug}' expiring at {url.expires_at.isoformat()}")

        return CreateResult(
            slug=url.slug,
            short_url=f"{self.base_url}/{url.slug}",
            expires_at=url.expires_at,
            protected=url.is_protected,
            manage_token=manage_token,
        )

    async def resolve(self, db: AsyncSession, slug: str) -> Optional[CachedURL]:
        """
        Look up a live link, cache first.

        A cache miss reads the database and repopulates the cache with the
        record's remaining lifetime. Cache errors are logged and treated as
        a miss.

        Returns:
            The cached projection, or None if the link is missing or expired
        """
        try:
            cached = await self.cache.get(slug)
        except CacheError as e:
            logger.warning(f"Cache get failed for slug '{slug}', falling back to db: {e}")
            cached = None

        if cached is not None:
            return cached

        now = utcnow()
        url = await self.url_repository.get_active_by_slug(db, slug, now=now)
        if url is None:
            return None

        if url.is_expired(now):
            return None
        remaining = url.remaining_ttl(now)

        cached = url.to_cached()
        try:
            await self.cache.set(slug, cached, remaining)
        except CacheError as e:
            logger.warning(f"Failed to populate cache for slug '{slug}': {e}")

        return cached

    async def verify_password(self, db: AsyncSession, slug: str, password: str) -> str:
        """
        Unlock a link.

        Unprotected links return their target whatever the password is.

        Returns:
            str: The target URL

        Raises:
            URLNotFoundError: If the link is missing or expired
            InvalidPasswordError: If the password does not match
        """
        cached = await self.resolve(db, slug)
        if cached is None:
            raise URLNotFoundError(f"URL with slug '{slug}' not found or expired")

        if not cached.protected:
            return cached.target_url

        matches = await run_in_threadpool(
            security.verify_password, password or "", cached.password_hash or ""
        )
        if not matches:
            raise InvalidPasswordError("invalid password")
        return cached.target_url

    async def expire_early(self, db: AsyncSession, slug: str, manage_token: str) -> None:
        """
        Expire a link now using its management token.

        Raises:
            InvalidManageTokenError: If the token is wrong, the slug unknown
                or the link already expired
        """
        token_hash = security.hash_manage_token(manage_token)

        updated = await self._expire_in_store(db, slug, token_hash)
        if not updated:
            raise InvalidManageTokenError("invalid manage token")

        try:
            await self.cache.delete(slug)
        except CacheError as e:
            logger.warning(f"Failed to invalidate cache after early expire of '{slug}': {e}")

        logger.info(f"Short link '{slug}' expired early")

    async def check_slug(self, db: AsyncSession, slug: str) -> SlugAvailability:
        """
        Report whether a slug can be used and suggest an alternative if not.

        Raises:
            InvalidSlugError: If the slug has an invalid format
        """
        self._validate_slug(slug)

        if not await self.url_repository.slug_exists(db, slug):
            return SlugAvailability(available=True)

        suggestion = await self._suggest_alternative(db, slug)
        return SlugAvailability(available=False, suggestion=suggestion)

    @db_transaction(db_param_name="db")
    async def _store_url(self, db: AsyncSession, url_data: Dict[str, Any]) -> ShortURL:
        return await self.url_repository.create_short_url(db, url_data)

    @db_transaction(db_param_name="db")
    async def _expire_in_store(self, db: AsyncSession, slug: str, token_hash: str) -> bool:
        return await self.url_repository.expire_by_slug(db, slug, token_hash)

    def _ttl_duration(self, ttl: Union[TTL, str]) -> timedelta:
        try:
            return VALID_TTLS[TTL(ttl)]
        except ValueError:
            raise InvalidTTLError(
                f"invalid ttl value, expected one of: {', '.join(t.value for t in TTL)}"
            )

    def _validate_slug(self, slug: str) -> None:
        if not is_valid_slug(slug):
            raise InvalidSlugError(
                f"slug must be {SLUG_MIN_LENGTH}-{SLUG_MAX_LENGTH} characters: "
                f"letters, numbers, or hyphens"
            )

    async def _resolve_slug(self, db: AsyncSession, requested: Optional[str]) -> str:
        if not requested:
            return await self._generate_unique_slug(db)

        self._validate_slug(requested)

        if not await self.url_repository.slug_exists(db, requested):
            return requested

        candidate = await self._suggest_alternative(db, requested)
        if candidate is None:
            raise SlugUnavailableError("slug is taken and no alternative could be found")
        return candidate

    async def _generate_unique_slug(self, db: AsyncSession) -> str:
        for _ in range(self.auto_slug_max_attempts):
            candidate = security.random_base62(self.auto_slug_length)
            if not await self.url_repository.slug_exists(db, candidate):
                return candidate

        raise SlugGenerationError(
            f"failed to generate a unique slug after {self.auto_slug_max_attempts} attempts"
        )

    async def _suggest_alternative(self, db: AsyncSession, slug: str) -> Optional[str]:
        """First free "slug-N" for N from 2, or None if every probe is taken."""
        for n in range(2, self.max_collision_tries + 1):
            candidate = f"{slug}-{n}"
            if not is_valid_slug(candidate):
                # Suffixes only get longer
                break
            if not await self.url_repository.slug_exists(db, candidate):
                return candidate
        return None
