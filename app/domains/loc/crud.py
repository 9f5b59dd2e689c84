# app/domains/loc/crud.py

"""
CRUD logic of the 'loc' domain (cities).
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import CRUDBase, clamp_limit
from app.core.database import run_with_timeout
from app.utils.normalizers import normalize_name
from . import models as loc_models
from . import schemas as loc_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. cities CRUD
# =============================================================================
class CRUDCity(CRUDBase[loc_models.City, loc_schemas.CityCreate, loc_schemas.CityCreate]):
    def __init__(self):
        super().__init__(model=loc_models.City)

    def _state_filter(self, statement, state_code: Optional[str]):
        if state_code:
            statement = statement.where(func.upper(func.trim(self.model.state_code)) == state_code.strip().upper())
        return statement

    async def find_exact(
        self, db: AsyncSession, *, name: str, state_code: Optional[str] = None, limit: int = 10
    ) -> List[loc_models.City]:
        """Case-insensitive, trimmed exact name match (and exact UF when given)."""
        statement = select(self.model).where(
            func.lower(func.trim(self.model.name)) == name.strip().lower()
        )
        statement = self._state_filter(statement, state_code).order_by(self.model.id).limit(limit)
        result = await run_with_timeout(db.execute(statement), settings.DB_QUERY_TIMEOUT, "city exact lookup")
        return result.scalars().all()

    async def find_by_prefix(
        self, db: AsyncSession, *, prefix: str, state_code: Optional[str] = None, limit: int = 200
    ) -> List[loc_models.City]:
        """Cities whose normalized name starts with the given normalized prefix."""
        statement = select(self.model).where(self.model.search_name.startswith(prefix, autoescape=True))
        statement = self._state_filter(statement, state_code).order_by(self.model.name).limit(limit)
        result = await run_with_timeout(db.execute(statement), settings.DB_QUERY_TIMEOUT, "city prefix lookup")
        return result.scalars().all()

    async def get_multi_by_name(
        self, db: AsyncSession, *, name_prefix: Optional[str] = None, skip: int = 0, limit: int = 50
    ) -> List[loc_models.City]:
        """Lists cities alphabetically, optionally narrowed by a name prefix."""
        statement = select(self.model)
        if name_prefix:
            statement = statement.where(self.model.search_name.startswith(normalize_name(name_prefix), autoescape=True))
        statement = statement.order_by(self.model.name, self.model.state_code).offset(skip).limit(clamp_limit(limit))
        result = await run_with_timeout(db.execute(statement), settings.DB_WRITE_TIMEOUT, "list cities")
        return result.scalars().all()

    async def create(self, db: AsyncSession, *, obj_in: loc_schemas.CityCreate) -> loc_models.City:
        """Stores a new city together with its normalized search name."""
        db_obj = loc_models.City(
            name=obj_in.name.strip(),
            state_code=obj_in.state_code.strip().upper(),
            search_name=normalize_name(obj_in.name),
        )
        db_obj = await self.save(db, db_obj)
        logger.info("City created: %s/%s (id=%s)", db_obj.name, db_obj.state_code, db_obj.id)
        return db_obj


city = CRUDCity()
