"""Database base configuration for SQLAlchemy with SQLModel.

This module provides base database configuration for async SQLAlchemy with SQLModel.
It includes:
- Engine configuration
- Session factory construction
- Schema bootstrap
- Health check functionality
"""

from typing import AsyncGenerator, Dict, Optional
import asyncio
import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import text
from sqlmodel import SQLModel

from shortlink.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def get_engine_config(settings: Settings) -> Dict:
    """Get the engine configuration for the configured database.

    Returns:
        Dict: Engine configuration parameters.
    """
    uri = str(settings.SQLALCHEMY_DATABASE_URI)
    if uri.startswith("sqlite"):
        # A single shared connection keeps in-memory databases alive
        return {
            "echo": settings.DB_ECHO,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    return {
        "echo": settings.DB_ECHO,
        "pool_size": settings.POSTGRES_POOL_SIZE,
        "max_overflow": settings.POSTGRES_POOL_MAX_OVERFLOW,
        "pool_timeout": settings.POSTGRES_POOL_TIMEOUT,
        "pool_recycle": settings.POSTGRES_POOL_RECYCLE,
        "pool_pre_ping": True,
        "connect_args": {"command_timeout": settings.DB_COMMAND_TIMEOUT},
    }


def get_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """Create and configure an async SQLAlchemy engine.

    Returns:
        AsyncEngine: Configured SQLAlchemy async engine instance.
    """
    settings = settings or default_settings
    engine_url = str(settings.SQLALCHEMY_DATABASE_URI)
    engine_config = get_engine_config(settings)

    logger.info(f"Creating database engine for {engine_url.split('@')[-1]}")

    return create_async_engine(engine_url, **engine_config)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Build the async session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create the schema if it does not exist yet.

    ``create_all`` skips existing tables and indexes, so this is safe to run
    on every startup.
    """
    # Make sure the table models are registered on the metadata
    import shortlink.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database schema is up to date")


@asynccontextmanager
async def get_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Get async session with proper cleanup.

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


class DatabaseHealthCheck:
    """Health check functionality for the database connection."""

    @staticmethod
    async def check_connection(session: AsyncSession) -> Dict:
        """Check database connectivity and return status.

        Returns:
            Dict: Health check result containing status and latency information
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        status = "healthy"
        error_message = None
        latency_ms = 0

        try:
            await session.execute(text("SELECT 1"))
            latency_ms = int((loop.time() - start_time) * 1000)
        except Exception as e:
            status = "unhealthy"
            error_message = str(e)
            logger.error(f"Database health check failed: {e}")

        return {
            "status": status,
            "latency_ms": latency_ms,
            "error": error_message,
        }
