# app/core/crud_base.py

"""
Base class for the common asynchronous CRUD (Create, Read, Update, Delete)
operations shared by every domain. Every store call is bounded by the
configured timeouts through `run_with_timeout`.
"""

from typing import Generic, List, Optional, Type, TypeVar, Any
from datetime import datetime, UTC

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from pydantic import BaseModel

from app.core.config import settings
from app.core.database import run_with_timeout

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


def clamp_limit(limit: Optional[int]) -> int:
    """Listing limit clamped to 1..PAGE_MAX_LIMIT (PAGE_DEFAULT_LIMIT when unset or invalid)."""
    if limit is None or limit <= 0:
        return settings.PAGE_DEFAULT_LIMIT
    return min(limit, settings.PAGE_MAX_LIMIT)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Defines the basic CRUD operations for one table model.
    """
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Fetches a single row by primary key.
        """
        return await run_with_timeout(
            db.get(self.model, id), settings.DB_QUERY_TIMEOUT, f"get {self.model.__tablename__}"
        )

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 50, **kwargs: Any
    ) -> List[ModelType]:
        """
        Lists rows newest first. Keyword arguments are equality filters.
        """
        query = select(self.model)

        for field, value in kwargs.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)

        query = query.order_by(self.model.id.desc()).offset(max(skip, 0)).limit(clamp_limit(limit))

        result = await run_with_timeout(
            db.execute(query), settings.DB_WRITE_TIMEOUT, f"list {self.model.__tablename__}"
        )
        return result.scalars().all()

    async def get_by_attribute(
        self, db: AsyncSession, *, attribute: str, value: Any
    ) -> Optional[ModelType]:
        statement = select(self.model).where(getattr(self.model, attribute) == value)
        response = await run_with_timeout(
            db.execute(statement), settings.DB_QUERY_TIMEOUT, f"lookup {self.model.__tablename__}.{attribute}"
        )
        return response.scalars().first()

    async def save(self, db: AsyncSession, db_obj: ModelType, *, timeout: Optional[float] = None) -> ModelType:
        """
        Commits a new or modified row and reloads it. Rolls back on failure.
        """
        db.add(db_obj)
        try:
            await run_with_timeout(db.commit(), timeout or settings.DB_WRITE_TIMEOUT, f"save {self.model.__tablename__}")
        except Exception:
            await db.rollback()
            raise
        await run_with_timeout(db.refresh(db_obj), settings.DB_QUERY_TIMEOUT, f"refresh {self.model.__tablename__}")
        return db_obj

    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType) -> ModelType:
        """
        Creates a new row.
        """
        db_obj = self.model.model_validate(obj_in)
        return await self.save(db, db_obj)

    async def update(
        self, db: AsyncSession, *, db_obj: ModelType, obj_in: UpdateSchemaType
    ) -> ModelType:
        """
        Applies the fields that were actually sent to an existing row.
        """
        update_data = obj_in.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_obj, key, value)
        if hasattr(db_obj, "updated_at"):
            db_obj.updated_at = datetime.now(UTC)

        return await self.save(db, db_obj)

    async def delete(self, db: AsyncSession, *, id: Any) -> Optional[ModelType]:
        """
        Physically removes a row by primary key.
        """
        db_obj = await self.get(db, id)
        if db_obj:
            await run_with_timeout(db.delete(db_obj), settings.DB_WRITE_TIMEOUT, f"delete {self.model.__tablename__}")
            try:
                await run_with_timeout(db.commit(), settings.DB_WRITE_TIMEOUT, f"delete {self.model.__tablename__}")
            except Exception:
                await db.rollback()
                raise
        return db_obj
