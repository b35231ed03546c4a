"""Session management for database operations.

This module provides utilities for handling SQLAlchemy async sessions
with proper lifecycle management, error handling, and transaction support.
It includes dependency injection patterns optimized for FastAPI.
"""

from typing import AsyncGenerator, Callable, Optional, TypeVar
import inspect
import logging
from contextlib import asynccontextmanager
from functools import wraps

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlink.db.base import get_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    The session factory is created at application startup and kept on
    ``app.state``. The session is rolled back if the request fails.

    Yields:
        AsyncSession: A SQLAlchemy async session object.
    """
    session_factory: async_sessionmaker = request.app.state.session_factory
    async with get_session(session_factory) as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.exception("Database error occurred")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


def db_transaction(db_param_name: Optional[str] = None) -> Callable:
    """Decorator to wrap functions in a database transaction.

    Finds the database session parameter, commits on success or rolls
    back on error. The session is located by ``db_param_name`` when given,
    otherwise by the first parameter annotated as AsyncSession.

    Example:
        ```python
        @db_transaction(db_param_name="db")
        async def _store(self, db: AsyncSession, data: dict) -> ShortURL:
            return await self.url_repository.create_short_url(db, data)
        ```

    Raises:
        ValueError: If no database session is passed to the wrapped function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        parameters = inspect.signature(func).parameters
        db_param_pos = None
        db_param_key = None

        for i, (param_name, param) in enumerate(parameters.items()):
            if db_param_name and param_name == db_param_name:
                db_param_pos, db_param_key = i, param_name
                break
            if db_param_name is None and param.annotation is AsyncSession:
                db_param_pos, db_param_key = i, param_name
                break

        if db_param_key is None:
            logger.warning(
                f"Unable to find database session parameter in function '{func.__name__}'"
            )

        @wraps(func)
        async def wrapper(*args, **kwargs):
            db = None
            if db_param_pos is not None and len(args) > db_param_pos:
                db = args[db_param_pos]
            elif db_param_key is not None and db_param_key in kwargs:
                db = kwargs[db_param_key]
            else:
                db = next(
                    (value for value in (*args, *kwargs.values()) if isinstance(value, AsyncSession)),
                    None,
                )

            if db is None:
                raise ValueError(
                    f"Database session not found in function arguments for '{func.__name__}'."
                )

            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except Exception as e:
                await db.rollback()
                logger.warning(f"Transaction rolled back in '{func.__name__}': {e}")
                raise

        return wrapper
    return decorator


class SessionManager:
    """Session manager for database operations outside of a request.

    Used by background jobs that cannot rely on the request dependency.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction_context(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for a database session with transaction support.

        Commits on successful completion or rolls back on error.

        Yields:
            AsyncSession: SQLAlchemy async session
        """
        async with get_session(self.session_factory) as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"Transaction failed: {e}")
                raise
