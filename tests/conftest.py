"""Test fixtures for the link shortener."""

from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from shortlink.cache.strategies import InMemoryURLCache
from shortlink.core.config import Settings
from shortlink.db.base import create_session_factory
from shortlink.main import create_app
from shortlink.repositories.url_repository import URLRepository
from shortlink.services.shortener import LinkService

# Import models to ensure they're registered with SQLModel metadata
from shortlink.models.url import ShortURL  # noqa: F401
from tests.utils import TEST_BASE_URL, TEST_SQLALCHEMY_DATABASE_URL, make_test_settings


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory SQLite engine for each test."""
    engine = create_async_engine(
        TEST_SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session; services under test commit through it."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def url_repository() -> URLRepository:
    return URLRepository()


@pytest.fixture
def memory_cache() -> InMemoryURLCache:
    return InMemoryURLCache()


@pytest.fixture
def link_service(url_repository, memory_cache) -> LinkService:
    return LinkService(
        url_repository=url_repository,
        cache=memory_cache,
        base_url=TEST_BASE_URL,
        auto_slug_length=8,
        auto_slug_max_attempts=10,
        max_collision_tries=10,
        manage_token_length=32,
    )


@pytest.fixture
def test_settings() -> Settings:
    return make_test_settings()


@pytest.fixture
def test_app(test_settings) -> FastAPI:
    """Create a FastAPI app with its own database and cache."""
    return create_app(test_settings)


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    """Return FastAPI TestClient instance; redirects are not followed."""
    with TestClient(test_app, follow_redirects=False) as test_client:
        yield test_client
