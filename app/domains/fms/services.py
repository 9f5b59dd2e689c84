# app/domains/fms/services.py

"""
Business services of the 'fms' domain.

- `ModuleReconciler`: keeps exactly one owner/module association row per
  equipment by replacing it (delete + insert) in a single transaction.
- `EquipmentLifecycle`: create, update, soft delete and deactivation of
  equipment, combining the serial check, city resolution, the notes blob
  and module reconciliation.

Both receive the request's session in their constructor. Validation and
lookups run before anything is written.
"""

import logging
from typing import Any, List, Optional
from datetime import datetime, UTC

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.database import run_with_timeout
from app.core.exceptions import DuplicateSerial, NotFound, StoreError, ValidationError
from app.domains.loc.services import resolve_city
from app.domains.usr import crud as usr_crud
from app.utils.normalizers import normalize_status
from . import crud as fms_crud
from . import models as fms_models
from . import schemas as fms_schemas
from .models import EquipmentStatus

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("model_id", "name", "serial_number", "installation_date", "status")

# Payload fields copied verbatim onto the row.
COLUMN_FIELDS = (
    "model_id", "name", "serial_number", "invoice_number", "equipment_serial_number",
    "zip_code", "district", "address", "number", "complement", "installation_date",
)


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean(value: Any) -> Any:
    """Trims strings; blank strings become None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# =============================================================================
# 1. ModuleReconciler
# =============================================================================
class ModuleReconciler:
    """
    Replaces the owner association of an equipment.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def replace(
        self, owner_id: Any, equipment_id: Any, flags: Optional[fms_schemas.ModuleFlags] = None
    ) -> Optional[fms_models.OwnerModuleAssociation]:
        """
        Deletes every association of the equipment and inserts one row with
        the given flags, then commits. Absent, zero or negative ids make the
        call a no-op (returns None).
        """
        owner = _positive_int(owner_id)
        equipment = _positive_int(equipment_id)
        if owner is None or equipment is None:
            logger.debug("Module replace skipped (owner=%r, equipment=%r)", owner_id, equipment_id)
            return None

        flags = flags or fms_schemas.ModuleFlags()
        try:
            row = await self._delete_and_insert(owner, equipment, flags)
        except StoreError as e:
            # A concurrent replace committed its row between our delete and
            # insert; the unique equipment_id rejected ours. Run once more so
            # the last commit wins.
            if not isinstance(e.original_error, IntegrityError):
                raise
            logger.warning("Concurrent module replace on equipment %s, retrying", equipment)
            row = await self._delete_and_insert(owner, equipment, flags)
        await run_with_timeout(self.db.refresh(row), settings.DB_QUERY_TIMEOUT, "refresh equipment modules")
        logger.info(
            "Modules of equipment %s replaced (owner=%s, cold=%s, hot=%s, pet=%s)",
            equipment, owner, row.cold_water, row.hot_water, row.pet_fountain,
        )
        return row

    async def _delete_and_insert(
        self, owner: int, equipment: int, flags: fms_schemas.ModuleFlags
    ) -> fms_models.OwnerModuleAssociation:
        row = fms_models.OwnerModuleAssociation(
            owner_id=owner,
            equipment_id=equipment,
            cold_water=bool(flags.cold_water),
            hot_water=bool(flags.hot_water),
            pet_fountain=bool(flags.pet_fountain),
        )
        try:
            await fms_crud.owner_module_association.delete_by_equipment(self.db, equipment_id=equipment)
            self.db.add(row)
            await run_with_timeout(self.db.commit(), settings.DB_WRITE_TIMEOUT, "replace equipment modules")
        except Exception:
            await self.db.rollback()
            raise
        return row

    async def clear(self, equipment_id: Any) -> int:
        """
        Deletes the association(s) of the equipment and commits, together
        with any change already pending on the session.
        """
        equipment = _positive_int(equipment_id)
        if equipment is None:
            return 0
        try:
            removed = await fms_crud.owner_module_association.delete_by_equipment(self.db, equipment_id=equipment)
            await run_with_timeout(self.db.commit(), settings.DB_WRITE_TIMEOUT, "clear equipment modules")
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Modules of equipment %s cleared (%d row(s))", equipment, removed)
        return removed


# =============================================================================
# 2. EquipmentLifecycle
# =============================================================================
class EquipmentLifecycle:
    """
    Equipment use cases. Deleted equipment is treated as gone: it can be
    soft-deleted again (no-op) but not read, updated or deactivated.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.modules = ModuleReconciler(db)

    # --- reads ---

    async def get(self, equipment_id: int) -> fms_models.Equipment:
        db_obj = await fms_crud.equipment.get_active(self.db, equipment_id)
        if db_obj is None:
            raise NotFound(f"Equipment {equipment_id} not found")
        return db_obj

    # --- validation helpers ---

    @staticmethod
    def _missing_fields(payload: fms_schemas.EquipmentCreate) -> List[str]:
        # status 0 is a value; empty strings are not
        return [field for field in REQUIRED_FIELDS if _is_blank(getattr(payload, field))]

    async def _check_model(self, model_id: int) -> None:
        if await fms_crud.equipment_model.get(self.db, model_id) is None:
            raise ValidationError(f"Equipment model {model_id} does not exist", fields=["model_id"])

    async def _check_serial(self, serial_number: str, exclude_id: Optional[int] = None) -> None:
        conflict = await fms_crud.equipment.find_serial_conflict(
            self.db, serial_number=serial_number, exclude_id=exclude_id
        )
        if conflict is not None:
            logger.warning("Serial number '%s' already used by equipment %s", serial_number.strip(), conflict.id)
            raise DuplicateSerial(f'Serial number "{serial_number.strip()}" is already registered')

    async def _check_owner(self, owner_id: Any) -> None:
        owner = _positive_int(owner_id)
        if owner is not None and await usr_crud.user.get(self.db, owner) is None:
            raise ValidationError(f"User {owner} does not exist", fields=["owner_id"])

    async def _resolve_city(self, text: Optional[str]) -> Optional[int]:
        if _is_blank(text):
            return None
        return await resolve_city(self.db, text)

    @staticmethod
    def _incoming_notes(payload: fms_schemas.EquipmentCreate) -> fms_schemas.EquipmentNotes:
        """Notes carried by the payload: the observation plus the sprinkler flag."""
        notes = fms_schemas.EquipmentNotes.from_observation(payload.observation)
        if payload.sprinkler_enabled is not None:
            notes = notes.model_copy(update={"sprinkler_enabled": payload.sprinkler_enabled})
        return notes

    # --- commands ---

    async def create(self, payload: fms_schemas.EquipmentCreate) -> fms_models.Equipment:
        """
        Registers a new equipment.

        Raises:
            ValidationError: required fields missing (all listed) or unknown model/owner.
            DuplicateSerial: serial number used by a non-deleted equipment.
            AmbiguousCity, CityCreationRequiresState: city text cannot be resolved.
        """
        missing = self._missing_fields(payload)
        if missing:
            raise ValidationError.missing(missing)

        status = normalize_status(payload.status)
        await self._check_model(payload.model_id)
        await self._check_serial(payload.serial_number)
        if payload.owner_id is not None:
            await self._check_owner(payload.owner_id)
        city_id = await self._resolve_city(payload.city)

        values = {field: _clean(getattr(payload, field)) for field in COLUMN_FIELDS}
        db_obj = fms_models.Equipment(
            **values,
            city_id=city_id,
            status=int(status),
            notes=self._incoming_notes(payload).dump(),
        )
        db_obj = await fms_crud.equipment.save(self.db, db_obj)
        logger.info("Equipment created: id=%s serial=%s", db_obj.id, db_obj.serial_number)

        if payload.owner_id is not None:
            await self.modules.replace(payload.owner_id, db_obj.id, payload.modules)
        return db_obj

    async def update(self, equipment_id: int, payload: fms_schemas.EquipmentUpdate) -> fms_models.Equipment:
        """
        Updates an equipment. A payload holding only `status` changes the
        status and modification time alone; any other payload is a full
        update that re-validates the required fields.
        """
        db_obj = await self.get(equipment_id)
        sent = payload.model_fields_set
        if not sent:
            raise ValidationError("No fields to update")

        if sent == {"status"}:
            if _is_blank(payload.status):
                raise ValidationError.missing(["status"])
            return await fms_crud.equipment.set_status(
                self.db, db_obj=db_obj, status=normalize_status(payload.status)
            )

        missing = self._missing_fields(payload)
        if missing:
            raise ValidationError.missing(missing)

        status = normalize_status(payload.status)
        await self._check_model(payload.model_id)
        await self._check_serial(payload.serial_number, exclude_id=db_obj.id)
        if "owner_id" in sent:
            await self._check_owner(payload.owner_id)
        if "city" in sent:
            city_id = await self._resolve_city(payload.city)
            # City registration commits (or rolls back) the session; reload the row.
            await run_with_timeout(self.db.refresh(db_obj), settings.DB_QUERY_TIMEOUT, "refresh equipments")
            db_obj.city_id = city_id

        for field in COLUMN_FIELDS:
            if field in sent:
                setattr(db_obj, field, _clean(getattr(payload, field)))
        if "observation" in sent or "sprinkler_enabled" in sent:
            stored = fms_schemas.EquipmentNotes.parse(db_obj.notes)
            db_obj.notes = stored.merge(self._incoming_notes(payload)).dump()
        db_obj.status = int(status)
        db_obj.updated_at = datetime.now(UTC)
        db_obj = await fms_crud.equipment.save(self.db, db_obj)
        logger.info("Equipment updated: id=%s", db_obj.id)

        if "owner_id" in sent:
            if _positive_int(payload.owner_id) is None:
                await self.modules.clear(db_obj.id)
            else:
                await self.modules.replace(payload.owner_id, db_obj.id, payload.modules)
        return db_obj

    async def soft_delete(self, equipment_id: int) -> fms_models.Equipment:
        """
        Marks the equipment DELETED and removes its owner association in
        one commit. Deleting an already deleted equipment is a no-op.
        """
        db_obj = await fms_crud.equipment.get(self.db, equipment_id)
        if db_obj is None:
            raise NotFound(f"Equipment {equipment_id} not found")
        if db_obj.status == EquipmentStatus.DELETED:
            return db_obj

        db_obj.status = int(EquipmentStatus.DELETED)
        db_obj.updated_at = datetime.now(UTC)
        self.db.add(db_obj)
        # The status change is flushed by the reconciler's commit.
        await self.modules.clear(db_obj.id)
        await run_with_timeout(self.db.refresh(db_obj), settings.DB_QUERY_TIMEOUT, "refresh equipments")
        logger.info("Equipment %s moved to trash", db_obj.id)
        return db_obj

    async def deactivate(self, equipment_id: int) -> fms_models.Equipment:
        db_obj = await self.get(equipment_id)
        return await fms_crud.equipment.set_status(self.db, db_obj=db_obj, status=EquipmentStatus.DEACTIVATED)

    async def replace_modules(
        self, equipment_id: int, request: fms_schemas.ModuleReplaceRequest
    ) -> Optional[fms_models.OwnerModuleAssociation]:
        """Sets the owner and enabled modules of an existing equipment."""
        db_obj = await self.get(equipment_id)
        await self._check_owner(request.owner_id)
        return await self.modules.replace(request.owner_id, db_obj.id, request)
