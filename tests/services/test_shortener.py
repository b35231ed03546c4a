"""Tests for the link service."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from shortlink.cache.strategies import CacheError, URLCache
from shortlink.core.security import BASE62_ALPHABET, hash_manage_token
from shortlink.models.url import TTL, VALID_TTLS, utcnow
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
from shortlink.services.shortener import LinkService, is_valid_slug, is_valid_target_url
from tests.utils import TEST_BASE_URL, create_test_url


class FailingCache(URLCache):
    """Cache whose backend is always down."""

    async def get(self, slug):
        raise CacheError("connection refused")

    async def set(self, slug, cached, ttl):
        raise CacheError("connection refused")

    async def delete(self, slug):
        raise CacheError("connection refused")


@pytest.mark.parametrize("slug", [
    "abcde",
    "my-link",
    "A1-b2-C3",
    "x" * 50,
    "-----",
    "12345",
])
def test_valid_slugs(slug):
    assert is_valid_slug(slug)


@pytest.mark.parametrize("slug", [
    "",
    None,
    "abcd",
    "x" * 51,
    "under_score",
    "has space",
    "slash/es",
    "ünïcode",
    "abcdef\n",
])
def test_invalid_slugs(slug):
    assert not is_valid_slug(slug)


@pytest.mark.parametrize("url,expected", [
    ("https://example.com", True),
    ("http://example.com/path?q=1", True),
    ("ftp://example.com/file", False),
    ("javascript:alert(1)", False),
    ("https://", False),
    ("example.com", False),
    ("", False),
])
def test_target_url_validation(url, expected):
    assert is_valid_target_url(url) is expected


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_with_generated_slug(self, test_db, link_service, url_repository):
        result = await link_service.create(test_db, target_url="https://example.com", ttl="24h")

        assert len(result.slug) == 8
        assert all(c in BASE62_ALPHABET for c in result.slug)
        assert result.short_url == f"{TEST_BASE_URL}/{result.slug}"
        assert result.protected is False

        stored = await url_repository.get_by_slug(test_db, result.slug)
        assert stored.target_url == "https://example.com"
        assert stored.password_hash is None
        assert len(result.manage_token) == 32
        assert result.manage_token != stored.manage_token_hash
        assert stored.manage_token_hash == hash_manage_token(result.manage_token)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", list(TTL))
    async def test_expiry_matches_ttl(self, test_db, link_service, url_repository, ttl):
        result = await link_service.create(test_db, target_url="https://example.com", ttl=ttl.value)

        stored = await url_repository.get_by_slug(test_db, result.slug)
        assert stored.expires_at - stored.created_at == VALID_TTLS[ttl]
        assert result.expires_at == stored.expires_at

    @pytest.mark.asyncio
    async def test_create_with_requested_slug(self, test_db, link_service):
        result = await link_service.create(
            test_db, target_url="https://example.com", ttl="1h", slug="my-link"
        )
        assert result.slug == "my-link"

    @pytest.mark.asyncio
    async def test_taken_slug_uses_first_free_suffix(self, test_db, link_service):
        await create_test_url(test_db, slug="promo")
        await create_test_url(test_db, slug="promo-2")

        result = await link_service.create(
            test_db, target_url="https://example.com", ttl="1h", slug="promo"
        )
        assert result.slug == "promo-3"

    @pytest.mark.asyncio
    async def test_conflict_when_all_suffixes_taken(self, test_db, link_service):
        await create_test_url(test_db, slug="promo")
        for n in range(2, 11):
            await create_test_url(test_db, slug=f"promo-{n}")

        with pytest.raises(SlugUnavailableError):
            await link_service.create(
                test_db, target_url="https://example.com", ttl="1h", slug="promo"
            )

    @pytest.mark.asyncio
    async def test_suffix_too_long_is_conflict(self, test_db, link_service):
        slug = "y" * 49
        await create_test_url(test_db, slug=slug)

        with pytest.raises(SlugUnavailableError):
            await link_service.create(test_db, target_url="https://example.com", ttl="1h", slug=slug)

    @pytest.mark.asyncio
    async def test_expired_unswept_slug_stays_taken(self, test_db, link_service):
        await create_test_url(test_db, slug="stale", expires_at=utcnow() - timedelta(hours=1))

        result = await link_service.create(
            test_db, target_url="https://example.com", ttl="1h", slug="stale"
        )
        assert result.slug == "stale-2"

    @pytest.mark.asyncio
    async def test_invalid_inputs(self, test_db, link_service):
        with pytest.raises(InvalidURLError):
            await link_service.create(test_db, target_url="not a url", ttl="1h")
        with pytest.raises(InvalidTTLError):
            await link_service.create(test_db, target_url="https://example.com", ttl="2h")
        with pytest.raises(InvalidSlugError):
            await link_service.create(
                test_db, target_url="https://example.com", ttl="1h", slug="bad slug"
            )

    @pytest.mark.asyncio
    async def test_password_is_hashed(self, test_db, link_service, url_repository):
        result = await link_service.create(
            test_db, target_url="https://example.com", ttl="1h", password="hunter2"
        )

        stored = await url_repository.get_by_slug(test_db, result.slug)
        assert result.protected is True
        assert stored.password_hash is not None
        assert stored.password_hash != "hunter2"
        assert stored.password_hash.startswith("$2")

    @pytest.mark.asyncio
    async def test_empty_password_means_unprotected(self, test_db, link_service):
        result = await link_service.create(
            test_db, target_url="https://example.com", ttl="1h", password=""
        )
        assert result.protected is False

    @pytest.mark.asyncio
    async def test_create_warms_cache(self, test_db, link_service, memory_cache):
        result = await link_service.create(test_db, target_url="https://example.com", ttl="1h")

        assert result.slug in memory_cache
        cached = await memory_cache.get(result.slug)
        assert cached.target_url == "https://example.com"

    @pytest.mark.asyncio
    async def test_generation_gives_up_after_max_attempts(self, test_db, link_service):
        await create_test_url(test_db, slug="AAAAAAAA")

        with patch("shortlink.core.security.random_base62", return_value="AAAAAAAA"):
            with pytest.raises(SlugGenerationError):
                await link_service.create(test_db, target_url="https://example.com", ttl="1h")

    @pytest.mark.asyncio
    async def test_insert_race_is_conflict(self, test_db, link_service):
        await create_test_url(test_db, slug="racer")

        with patch.object(link_service.url_repository, "slug_exists", AsyncMock(return_value=False)):
            with pytest.raises(SlugUnavailableError):
                await link_service.create(
                    test_db, target_url="https://example.com", ttl="1h", slug="racer"
                )


class TestResolve:

    @pytest.mark.asyncio
    async def test_cache_miss_reads_store_and_populates(self, test_db, link_service, memory_cache):
        await create_test_url(test_db, slug="fromdb", target_url="https://example.org")

        cached = await link_service.resolve(test_db, "fromdb")

        assert cached.target_url == "https://example.org"
        assert "fromdb" in memory_cache

    @pytest.mark.asyncio
    async def test_unknown_slug(self, test_db, link_service):
        assert await link_service.resolve(test_db, "missing") is None

    @pytest.mark.asyncio
    async def test_expired_record_is_not_found(self, test_db, link_service, memory_cache):
        await create_test_url(test_db, slug="gone1", expires_at=utcnow() - timedelta(seconds=1))

        assert await link_service.resolve(test_db, "gone1") is None
        assert "gone1" not in memory_cache

    @pytest.mark.asyncio
    async def test_cache_may_outlive_store_expiry(self, test_db, link_service, memory_cache, url_repository):
        """Expiry in the store is not pushed to the cache; the entry lives until its own TTL."""
        result = await link_service.create(test_db, target_url="https://example.com", ttl="1h")

        stored = await url_repository.get_by_slug(test_db, result.slug)
        stored.expires_at = utcnow() - timedelta(seconds=1)
        await test_db.commit()

        assert await url_repository.get_active_by_slug(test_db, result.slug) is None
        # Still served from the cache
        cached = await link_service.resolve(test_db, result.slug)
        assert cached is not None

        await memory_cache.delete(result.slug)
        assert await link_service.resolve(test_db, result.slug) is None

    @pytest.mark.asyncio
    async def test_cache_failure_falls_back_to_store(self, test_db, url_repository):
        service = LinkService(url_repository, FailingCache(), base_url=TEST_BASE_URL)

        result = await service.create(test_db, target_url="https://example.com", ttl="1h")
        cached = await service.resolve(test_db, result.slug)

        assert cached.target_url == "https://example.com"
        await service.expire_early(test_db, result.slug, result.manage_token)
        assert await service.resolve(test_db, result.slug) is None


class TestVerifyPassword:

    @pytest.mark.asyncio
    async def test_correct_password(self, test_db, link_service):
        result = await link_service.create(
            test_db, target_url="https://secret.example.com", ttl="1h", password="open-sesame"
        )

        target = await link_service.verify_password(test_db, result.slug, "open-sesame")
        assert target == "https://secret.example.com"

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_db, link_service):
        result = await link_service.create(
            test_db, target_url="https://secret.example.com", ttl="1h", password="open-sesame"
        )

        with pytest.raises(InvalidPasswordError):
            await link_service.verify_password(test_db, result.slug, "wrong")
        with pytest.raises(InvalidPasswordError):
            await link_service.verify_password(test_db, result.slug, "")

    @pytest.mark.asyncio
    async def test_unprotected_accepts_any_password(self, test_db, link_service):
        result = await link_service.create(test_db, target_url="https://example.com", ttl="1h")

        assert await link_service.verify_password(test_db, result.slug, "anything") == "https://example.com"
        assert await link_service.verify_password(test_db, result.slug, "") == "https://example.com"

    @pytest.mark.asyncio
    async def test_missing_link(self, test_db, link_service):
        with pytest.raises(URLNotFoundError):
            await link_service.verify_password(test_db, "nothere", "pw")

    @pytest.mark.asyncio
    async def test_password_checked_from_store_on_cache_miss(self, test_db, link_service, memory_cache):
        await create_test_url(test_db, slug="gated", password="pw123")

        assert await link_service.verify_password(test_db, "gated", "pw123")
        assert "gated" in memory_cache


class TestExpireEarly:

    @pytest.mark.asyncio
    async def test_expire_succeeds_exactly_once(self, test_db, link_service, memory_cache):
        result = await link_service.create(test_db, target_url="https://example.com", ttl="24h")
        assert result.slug in memory_cache

        await link_service.expire_early(test_db, result.slug, result.manage_token)

        assert result.slug not in memory_cache
        assert await link_service.resolve(test_db, result.slug) is None

        with pytest.raises(InvalidManageTokenError):
            await link_service.expire_early(test_db, result.slug, result.manage_token)

    @pytest.mark.asyncio
    async def test_wrong_token(self, test_db, link_service):
        result = await link_service.create(test_db, target_url="https://example.com", ttl="24h")

        with pytest.raises(InvalidManageTokenError):
            await link_service.expire_early(test_db, result.slug, "not-the-token")

        assert await link_service.resolve(test_db, result.slug) is not None

    @pytest.mark.asyncio
    async def test_unknown_slug(self, test_db, link_service):
        with pytest.raises(InvalidManageTokenError):
            await link_service.expire_early(test_db, "unknown", "token")


class TestCheckSlug:

    @pytest.mark.asyncio
    async def test_available(self, test_db, link_service):
        availability = await link_service.check_slug(test_db, "fresh-slug")
        assert availability.available is True
        assert availability.suggestion is None

    @pytest.mark.asyncio
    async def test_taken_with_suggestion(self, test_db, link_service):
        await create_test_url(test_db, slug="brand")

        availability = await link_service.check_slug(test_db, "brand")
        assert availability.available is False
        assert availability.suggestion == "brand-2"

    @pytest.mark.asyncio
    async def test_taken_without_suggestion(self, test_db, link_service):
        await create_test_url(test_db, slug="brand")
        for n in range(2, 11):
            await create_test_url(test_db, slug=f"brand-{n}")

        availability = await link_service.check_slug(test_db, "brand")
        assert availability.available is False
        assert availability.suggestion is None

    @pytest.mark.asyncio
    async def test_invalid_format(self, test_db, link_service):
        with pytest.raises(InvalidSlugError):
            await link_service.check_slug(test_db, "no")
