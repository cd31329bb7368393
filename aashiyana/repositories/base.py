"""
Base repository class with common CRUD operations using async SQLAlchemy.
Provides generic database operations that can be extended by specific repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.interfaces import MANYTOONE
from aashiyana.database import Base
from typing import TypeVar, Generic, Optional, Dict, Any, Type
import logging

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository class providing common CRUD operations.
    Write methods commit their own unit of work and roll back on failure.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize repository with model class and database session.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    def _with_relationships(self, query):
        for relationship in self.model.__mapper__.relationships:
            # Back-references to a parent are not needed when loading by id
            if relationship.direction is MANYTOONE:
                continue
            query = query.options(selectinload(getattr(self.model, relationship.key)))
        return query

    async def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create a new record in the database.

        Args:
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance
        """
        try:
            db_obj = self.model(**obj_in)
            self.db.add(db_obj)
            await self.db.commit()
            await self.db.refresh(db_obj)
            logger.debug(f"Created {self.model.__name__} with id: {db_obj.id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create {self.model.__name__}: {e}")
            raise

    async def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[ModelType]:
        """
        Get a record by its ID, refreshing any copy already in the session.

        Args:
            id: Identifier of the record to retrieve
            load_relationships: Whether to eagerly load relationships

        Returns:
            Model instance if found, None otherwise
        """
        try:
            query = (
                select(self.model)
                .where(self.model.id == id)
                .execution_options(populate_existing=True)
            )

            if load_relationships:
                query = self._with_relationships(query)

            result = await self.db.execute(query)
            obj = result.scalar_one_or_none()

            if obj:
                logger.debug(f"Retrieved {self.model.__name__} with id: {id}")
            else:
                logger.debug(f"{self.model.__name__} with id {id} not found")

            return obj
        except Exception as e:
            logger.error(f"Failed to get {self.model.__name__} by id {id}: {e}")
            raise

    async def get_by_field(self, field: str, value: Any, load_relationships: bool = True) -> Optional[ModelType]:
        """
        Get the first record matching a field value.

        Raises:
            ValueError: If the field does not exist on the model
        """
        try:
            if not hasattr(self.model, field):
                raise ValueError(f"Field '{field}' does not exist on {self.model.__name__}")

            query = (
                select(self.model)
                .where(getattr(self.model, field) == value)
                .limit(1)
                .execution_options(populate_existing=True)
            )

            if load_relationships:
                query = self._with_relationships(query)

            result = await self.db.execute(query)
            obj = result.scalars().first()

            if obj:
                logger.debug(f"Retrieved {self.model.__name__} by {field}: {value}")
            else:
                logger.debug(f"{self.model.__name__} with {field}={value} not found")

            return obj
        except Exception as e:
            logger.error(f"Failed to get {self.model.__name__} by {field}={value}: {e}")
            raise

    async def apply_changes(self, db_obj: ModelType, changes: Dict[str, Any]) -> ModelType:
        """
        Set attributes on a loaded record and commit.
        Goes through the ORM so mapper-level version checks apply.
        """
        # Rollback expires the instance, so read the id up front
        obj_id = db_obj.id
        try:
            for field, value in changes.items():
                setattr(db_obj, field, value)
            await self.db.commit()
            logger.debug(f"Updated {self.model.__name__} with id: {obj_id}")
            return db_obj
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update {self.model.__name__} {obj_id}: {e}")
            raise
