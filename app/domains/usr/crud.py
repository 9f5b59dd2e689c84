# app/domains/usr/crud.py

"""
CRUD logic of the 'usr' domain (user accounts).
"""

import logging
from typing import Optional
from datetime import datetime, UTC

from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import CRUDBase
from app.core.database import run_with_timeout
from app.core.exceptions import DuplicateEmail, StoreError, ValidationError
from app.core.security import get_password_hash
from app.domains.loc import crud as loc_crud
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)

# Fields a null in an update payload cannot clear.
NON_NULLABLE_FIELDS = ("name", "email", "type", "password", "notifications")


# =============================================================================
# 1. users CRUD
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.User)

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[usr_models.User]:
        """Case-insensitive e-mail lookup."""
        statement = select(self.model).where(func.lower(self.model.email) == email.strip().lower())
        result = await run_with_timeout(db.execute(statement), settings.DB_QUERY_TIMEOUT, "user by email")
        return result.scalars().first()

    async def _check_city(self, db: AsyncSession, city_id: Optional[int]) -> None:
        if city_id is not None and await loc_crud.city.get(db, city_id) is None:
            raise ValidationError(f"City {city_id} does not exist", fields=["city_id"])

    async def _save_user(self, db: AsyncSession, db_obj: usr_models.User) -> usr_models.User:
        try:
            return await self.save(db, db_obj, timeout=settings.DB_USER_WRITE_TIMEOUT)
        except StoreError as e:
            # The e-mail unique constraint is the only one a valid payload can hit.
            if isinstance(e.original_error, IntegrityError):
                raise DuplicateEmail("E-mail already registered", original_error=e) from e
            raise

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """Creates a user, hashing the password and rejecting duplicate e-mails."""
        if await self.get_by_email(db, email=obj_in.email):
            raise DuplicateEmail("E-mail already registered")
        await self._check_city(db, obj_in.city_id)

        user_data = obj_in.model_dump(exclude={"password"})
        user_data["name"] = user_data["name"].strip()
        user_data["email"] = user_data["email"].strip()
        db_user = usr_models.User(**user_data, password_hash=get_password_hash(obj_in.password))
        db_user = await self._save_user(db, db_user)
        logger.info("User created: id=%s", db_user.id)
        return db_user

    async def update(
        self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserUpdate
    ) -> usr_models.User:
        """
        Applies the fields that were sent. An explicit null clears a nullable
        column; it is ignored for the fields listed in NON_NULLABLE_FIELDS.
        Raises ValidationError when nothing is left to update.
        """
        update_data = {
            k: v for k, v in obj_in.model_dump(exclude_unset=True).items()
            if v is not None or k not in NON_NULLABLE_FIELDS
        }
        if not update_data:
            raise ValidationError("No fields to update")

        if "email" in update_data and update_data["email"].strip().lower() != db_obj.email.lower():
            existing = await self.get_by_email(db, email=update_data["email"])
            if existing is not None and existing.id != db_obj.id:
                raise DuplicateEmail("E-mail already registered")
        if update_data.get("city_id") is not None:
            await self._check_city(db, update_data["city_id"])

        password = update_data.pop("password", None)
        if password is not None:
            db_obj.password_hash = get_password_hash(password)
        for key, value in update_data.items():
            setattr(db_obj, key, value.strip() if key in ("name", "email") else value)
        db_obj.updated_at = datetime.now(UTC)

        db_obj = await self._save_user(db, db_obj)
        logger.info("User updated: id=%s fields=%s", db_obj.id, sorted(update_data) + (["password"] if password else []))
        return db_obj


user = CRUDUser()
