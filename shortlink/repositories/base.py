"""Base repository implementation for the link shortener.

This module provides a generic BaseRepository class that follows the Repository pattern
for database operations, serving as a foundation for more specific repositories.
"""

from typing import Any, Dict, Generic, Type, TypeVar, Union
import logging

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

T = TypeVar("T", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class DuplicateEntityError(RepositoryError):
    """Exception raised when a unique constraint is violated."""

    def __init__(self, model_type: Type[SQLModel], field_name: str, value: Any):
        self.model_type = model_type
        self.field_name = field_name
        self.value = value
        model_name = getattr(model_type, "__name__", "Entity")
        super().__init__(f"{model_name} with {field_name}={value} already exists")


class BaseRepository(Generic[T, CreateSchemaType]):
    """
    Base repository implementing common operations for SQLModel entities.

    Repositories are stateless; the session is passed to every call so the
    caller owns the transaction boundary.

    Type parameters:
        T: The SQLModel type this repository manages
        CreateSchemaType: The Pydantic model type for creation operations
    """

    def __init__(self, model_type: Type[T]):
        self.model_type = model_type

    async def create(self, db: AsyncSession, data: Union[CreateSchemaType, Dict[str, Any]]) -> T:
        """
        Create a new entity.

        Args:
            db: Database session
            data: Entity data (either as a Pydantic model or dictionary)

        Returns:
            The created entity

        Raises:
            IntegrityError: On constraint violations, for the caller to translate
            RepositoryError: On other database errors
        """
        try:
            if isinstance(data, BaseModel):
                data_dict = data.model_dump(exclude_unset=True)
            else:
                data_dict = data

            entity = self.model_type(**data_dict)
            db.add(entity)
            await db.flush()  # Flush to generate ID but don't commit yet
            await db.refresh(entity)
            return entity
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error creating entity: {e}") from e

    async def exists(self, db: AsyncSession, **kwargs) -> bool:
        """
        Check if an entity exists with the given filters.

        Args:
            db: Database session
            **kwargs: Field=value pairs to filter by

        Returns:
            True if entity exists, False otherwise

        Raises:
            RepositoryError: On database errors
        """
        if not kwargs:
            raise ValueError("No conditions provided for exists check")

        conditions = [getattr(self.model_type, field) == value for field, value in kwargs.items()]
        try:
            query = select(func.count()).select_from(self.model_type).where(*conditions)
            result = await db.execute(query)
            return result.scalar_one() > 0
        except SQLAlchemyError as e:
            logger.error(f"Error checking existence of {self.model_type.__name__}: {e}")
            raise RepositoryError(f"Database error checking entity existence: {e}") from e

    async def bulk_delete(self, db: AsyncSession, *conditions) -> int:
        """
        Delete all entities matching the given SQLAlchemy conditions.

        Returns:
            Number of rows deleted

        Raises:
            RepositoryError: On database errors
        """
        if not conditions:
            raise ValueError("No conditions provided for bulk delete")

        try:
            stmt = delete(self.model_type).where(*conditions)
            result = await db.execute(stmt)
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error bulk deleting {self.model_type.__name__} records: {e}")
            raise RepositoryError(f"Database error bulk deleting entities: {e}") from e
