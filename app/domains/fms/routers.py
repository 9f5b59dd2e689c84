# app/domains/fms/routers.py

"""
API endpoints of the 'fms' domain.

Equipment models, equipment (lifecycle, modules, filter replacement
history). Domain errors raised by the services are turned into responses
by the handlers registered in `app.main`.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.core.exceptions import NotFound

from app.domains.fms import crud as fms_crud
from app.domains.fms import models as fms_models
from app.domains.fms import schemas as fms_schemas
from app.domains.fms.services import EquipmentLifecycle
from app.utils.normalizers import normalize_status

router = APIRouter(
    tags=["Fleet Management"],
    responses={404: {"description": "Not found"}},
)


def _equipment_response(db_obj: fms_models.Equipment, city_name: Optional[str]) -> fms_schemas.EquipmentResponse:
    return fms_schemas.EquipmentResponse(**db_obj.model_dump(), city_name=city_name)


async def _with_city(db: AsyncSession, db_obj: fms_models.Equipment) -> fms_schemas.EquipmentResponse:
    return _equipment_response(db_obj, await fms_crud.equipment.get_city_name(db, db_obj))


# =============================================================================
# 1. equipment_models endpoints
# =============================================================================
@router.get("/models", response_model=List[fms_schemas.EquipmentModelResponse], summary="List equipment models")
async def read_equipment_models(
    page: deps.Pagination = Depends(deps.get_pagination),
    db: AsyncSession = Depends(deps.get_db_session),
):
    return await fms_crud.equipment_model.get_multi(db, skip=page.skip, limit=page.limit)


@router.post("/models", response_model=fms_schemas.EquipmentModelResponse, status_code=status.HTTP_201_CREATED, summary="Create an equipment model")
async def create_equipment_model(
    model_create: fms_schemas.EquipmentModelCreate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Creates an equipment model (type).
    - `name`: model name (required, trimmed)
    """
    return await fms_crud.equipment_model.create(db, obj_in=model_create)


@router.get("/models/{model_id}", response_model=fms_schemas.EquipmentModelResponse, summary="Get an equipment model")
async def read_equipment_model(
    model_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_model = await fms_crud.equipment_model.get(db, model_id)
    if db_model is None:
        raise NotFound(f"Equipment model {model_id} not found")
    return db_model


@router.put("/models/{model_id}", response_model=fms_schemas.EquipmentModelResponse, summary="Rename an equipment model")
async def update_equipment_model(
    model_id: int,
    model_update: fms_schemas.EquipmentModelUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_model = await fms_crud.equipment_model.get(db, model_id)
    if db_model is None:
        raise NotFound(f"Equipment model {model_id} not found")
    return await fms_crud.equipment_model.update(db, db_obj=db_model, obj_in=model_update)


@router.delete("/models/{model_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an equipment model")
async def delete_equipment_model(
    model_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Physically removes an equipment model.
    """
    db_model = await fms_crud.equipment_model.delete(db, id=model_id)
    if db_model is None:
        raise NotFound(f"Equipment model {model_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# 2. equipments endpoints
# =============================================================================
@router.get("/equipments", response_model=List[fms_schemas.EquipmentResponse], summary="List equipment")
async def read_equipments(
    status_filter: Optional[str] = Query(None, alias="status", description="Status code or token"),
    page: deps.Pagination = Depends(deps.get_pagination),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Lists non-deleted equipment, newest first, with the city name.
    """
    code = normalize_status(status_filter) if status_filter is not None else None
    rows = await fms_crud.equipment.get_multi_active(db, skip=page.skip, limit=page.limit, status=code)
    return [_equipment_response(db_obj, city_name) for db_obj, city_name in rows]


@router.post("/equipments", response_model=fms_schemas.EquipmentResponse, status_code=status.HTTP_201_CREATED, summary="Register equipment")
async def create_equipment(
    equipment_create: fms_schemas.EquipmentCreate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Registers equipment.
    - 400: missing required fields (all listed), unknown model, unknown city without state code
    - 409: duplicate serial number, ambiguous city
    """
    db_obj = await EquipmentLifecycle(db).create(equipment_create)
    return await _with_city(db, db_obj)


@router.get("/equipments/{equipment_id}", response_model=fms_schemas.EquipmentResponse, summary="Get equipment")
async def read_equipment(
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_obj = await EquipmentLifecycle(db).get(equipment_id)
    return await _with_city(db, db_obj)


@router.put("/equipments/{equipment_id}", response_model=fms_schemas.EquipmentResponse, summary="Update equipment")
async def update_equipment(
    equipment_id: int,
    equipment_update: fms_schemas.EquipmentUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    `{"status": ...}` alone toggles the status; any other body is a full update.
    """
    db_obj = await EquipmentLifecycle(db).update(equipment_id, equipment_update)
    return await _with_city(db, db_obj)


@router.delete("/equipments/{equipment_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Move equipment to trash")
async def delete_equipment(
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Soft delete: status DELETED, owner association removed, history kept.
    """
    await EquipmentLifecycle(db).soft_delete(equipment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/equipments/{equipment_id}/deactivate", response_model=fms_schemas.EquipmentResponse, summary="Deactivate equipment")
async def deactivate_equipment(
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_obj = await EquipmentLifecycle(db).deactivate(equipment_id)
    return await _with_city(db, db_obj)


# =============================================================================
# 3. owner / modules endpoints
# =============================================================================
@router.get("/equipments/{equipment_id}/modules", response_model=Optional[fms_schemas.ModuleAssociationResponse], summary="Get equipment modules")
async def read_equipment_modules(
    equipment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    await EquipmentLifecycle(db).get(equipment_id)
    rows = await fms_crud.owner_module_association.get_by_equipment(db, equipment_id=equipment_id)
    return rows[0] if rows else None


@router.put("/equipments/{equipment_id}/modules", response_model=fms_schemas.ModuleAssociationResponse, summary="Replace equipment modules")
async def replace_equipment_modules(
    equipment_id: int,
    request: fms_schemas.ModuleReplaceRequest,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Replaces the owner and module flags of the equipment (one row per equipment).
    """
    return await EquipmentLifecycle(db).replace_modules(equipment_id, request)


# =============================================================================
# 4. filter_replacements endpoints
# =============================================================================
@router.get("/equipments/{equipment_id}/filter_replacements", response_model=List[fms_schemas.FilterReplacementResponse], summary="List filter replacements")
async def read_filter_replacements(
    equipment_id: int,
    page: deps.Pagination = Depends(deps.get_pagination),
    db: AsyncSession = Depends(deps.get_db_session),
):
    await EquipmentLifecycle(db).get(equipment_id)
    return await fms_crud.filter_replacement.get_by_equipment(
        db, equipment_id=equipment_id, skip=page.skip, limit=page.limit
    )


@router.post("/equipments/{equipment_id}/filter_replacements", response_model=fms_schemas.FilterReplacementResponse, status_code=status.HTTP_201_CREATED, summary="Record a filter replacement")
async def create_filter_replacement(
    equipment_id: int,
    replacement_create: fms_schemas.FilterReplacementCreate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    await EquipmentLifecycle(db).get(equipment_id)
    return await fms_crud.filter_replacement.create_for_equipment(
        db, equipment_id=equipment_id, obj_in=replacement_create
    )
