# app/domains/loc/routers.py

"""
API endpoints of the 'loc' domain: city listing and city resolution.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps

from app.domains.loc import crud as loc_crud
from app.domains.loc import schemas as loc_schemas
from app.domains.loc.services import CityResolver

router = APIRouter(
    tags=["City Management"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. cities endpoints
# =============================================================================
@router.get("/cities", response_model=List[loc_schemas.CityResponse], summary="List cities")
async def read_cities(
    name: Optional[str] = Query(None, description="Accent-insensitive name prefix"),
    page: deps.Pagination = Depends(deps.get_pagination),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Lists cities alphabetically, optionally narrowed by a name prefix.
    """
    return await loc_crud.city.get_multi_by_name(db, name_prefix=name, skip=page.skip, limit=page.limit)


@router.post("/cities/resolve", response_model=loc_schemas.CityResolveResponse, summary="Resolve a city name to its id")
async def resolve_city(
    request: loc_schemas.CityResolveRequest,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Resolves `city` ("Name" or "Name/UF") to a stored city, registering it
    when it is unknown and a state code is available.
    - 400: unknown city without state code
    - 409: more than one city matches
    """
    city = await CityResolver(db).resolve_text(request.city, request.state_code)
    return loc_schemas.CityResolveResponse(id=city.id, name=city.name, state_code=city.state_code)
