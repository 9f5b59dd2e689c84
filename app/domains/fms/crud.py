# app/domains/fms/crud.py

"""
CRUD logic of the 'fms' domain (fleet management).
"""

import logging
from typing import List, Optional, Tuple
from datetime import datetime, UTC

from sqlalchemy import delete
from sqlalchemy.sql import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import CRUDBase, clamp_limit
from app.core.database import run_with_timeout
from app.domains.loc import models as loc_models
from . import models as fms_models
from . import schemas as fms_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. EquipmentModel CRUD
# =============================================================================
class CRUDEquipmentModel(
    CRUDBase[
        fms_models.EquipmentModel,
        fms_schemas.EquipmentModelCreate,
        fms_schemas.EquipmentModelUpdate
    ]
):
    def __init__(self):
        super().__init__(model=fms_models.EquipmentModel)


equipment_model = CRUDEquipmentModel()


# =============================================================================
# 2. Equipment CRUD
#    Writes go through the lifecycle service (app.domains.fms.services).
# =============================================================================
class CRUDEquipment(
    CRUDBase[
        fms_models.Equipment,
        fms_schemas.EquipmentCreate,
        fms_schemas.EquipmentUpdate
    ]
):
    def __init__(self):
        super().__init__(model=fms_models.Equipment)

    async def get_active(self, db: AsyncSession, id: int) -> Optional[fms_models.Equipment]:
        """Equipment by id, or None when absent or soft-deleted."""
        db_obj = await self.get(db, id)
        if db_obj is None or db_obj.status == fms_models.EquipmentStatus.DELETED:
            return None
        return db_obj

    async def find_serial_conflict(
        self, db: AsyncSession, *, serial_number: str, exclude_id: Optional[int] = None
    ) -> Optional[fms_models.Equipment]:
        """
        Non-deleted equipment using the same serial number (trimmed,
        case-insensitive), other than `exclude_id`.
        """
        statement = select(self.model).where(
            func.lower(func.trim(self.model.serial_number)) == serial_number.strip().lower(),
            self.model.status != fms_models.EquipmentStatus.DELETED,
        )
        if exclude_id is not None:
            statement = statement.where(self.model.id != exclude_id)
        result = await run_with_timeout(
            db.execute(statement.limit(1)), settings.DB_QUERY_TIMEOUT, "equipment serial check"
        )
        return result.scalars().first()

    async def get_multi_active(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 50, status: Optional[int] = None
    ) -> List[Tuple[fms_models.Equipment, Optional[str]]]:
        """
        Non-deleted equipment, newest first, each paired with its city name.
        """
        statement = (
            select(self.model, loc_models.City.name)
            .outerjoin(loc_models.City, loc_models.City.id == self.model.city_id)
            .where(self.model.status != fms_models.EquipmentStatus.DELETED)
        )
        if status is not None:
            statement = statement.where(self.model.status == int(status))
        statement = statement.order_by(self.model.id.desc()).offset(max(skip, 0)).limit(clamp_limit(limit))
        result = await run_with_timeout(db.execute(statement), settings.DB_WRITE_TIMEOUT, "list equipments")
        return [(row[0], row[1]) for row in result.all()]

    async def get_city_name(self, db: AsyncSession, db_obj: fms_models.Equipment) -> Optional[str]:
        if db_obj.city_id is None:
            return None
        city = await run_with_timeout(
            db.get(loc_models.City, db_obj.city_id), settings.DB_QUERY_TIMEOUT, "equipment city"
        )
        return city.name if city else None

    async def set_status(
        self, db: AsyncSession, *, db_obj: fms_models.Equipment, status: fms_models.EquipmentStatus
    ) -> fms_models.Equipment:
        """Changes only the status and the modification time."""
        db_obj.status = int(status)
        db_obj.updated_at = datetime.now(UTC)
        db_obj = await self.save(db, db_obj)
        logger.info("Equipment %s status -> %s", db_obj.id, fms_models.EquipmentStatus(db_obj.status).name)
        return db_obj


equipment = CRUDEquipment()


# =============================================================================
# 3. OwnerModuleAssociation queries
#    No commit here: the reconciler owns the transaction.
# =============================================================================
class CRUDOwnerModuleAssociation(
    CRUDBase[
        fms_models.OwnerModuleAssociation,
        fms_schemas.ModuleReplaceRequest,
        fms_schemas.ModuleReplaceRequest
    ]
):
    def __init__(self):
        super().__init__(model=fms_models.OwnerModuleAssociation)

    async def get_by_equipment(
        self, db: AsyncSession, *, equipment_id: int
    ) -> List[fms_models.OwnerModuleAssociation]:
        statement = select(self.model).where(self.model.equipment_id == equipment_id).order_by(self.model.id)
        result = await run_with_timeout(db.execute(statement), settings.DB_QUERY_TIMEOUT, "equipment modules")
        return result.scalars().all()

    async def delete_by_equipment(self, db: AsyncSession, *, equipment_id: int) -> int:
        """Deletes every association of the equipment; returns the row count."""
        statement = delete(self.model).where(self.model.equipment_id == equipment_id)
        result = await run_with_timeout(
            db.execute(statement), settings.DB_WRITE_TIMEOUT, "clear equipment modules"
        )
        return result.rowcount or 0


owner_module_association = CRUDOwnerModuleAssociation()


# =============================================================================
# 4. FilterReplacement CRUD
# =============================================================================
class CRUDFilterReplacement(
    CRUDBase[
        fms_models.FilterReplacement,
        fms_schemas.FilterReplacementCreate,
        fms_schemas.FilterReplacementCreate
    ]
):
    def __init__(self):
        super().__init__(model=fms_models.FilterReplacement)

    async def get_by_equipment(
        self, db: AsyncSession, *, equipment_id: int, skip: int = 0, limit: int = 50
    ) -> List[fms_models.FilterReplacement]:
        """Replacement history of one equipment, newest first."""
        statement = (
            select(self.model)
            .where(self.model.equipment_id == equipment_id)
            .order_by(self.model.replaced_on.desc(), self.model.id.desc())
            .offset(max(skip, 0))
            .limit(clamp_limit(limit))
        )
        result = await run_with_timeout(db.execute(statement), settings.DB_WRITE_TIMEOUT, "list filter replacements")
        return result.scalars().all()

    async def create_for_equipment(
        self, db: AsyncSession, *, equipment_id: int, obj_in: fms_schemas.FilterReplacementCreate
    ) -> fms_models.FilterReplacement:
        db_obj = fms_models.FilterReplacement(equipment_id=equipment_id, **obj_in.model_dump())
        db_obj = await self.save(db, db_obj)
        logger.info("Filter replacement recorded for equipment %s (id=%s)", equipment_id, db_obj.id)
        return db_obj


filter_replacement = CRUDFilterReplacement()
