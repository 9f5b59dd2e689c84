# app/domains/usr/routers.py

"""
API endpoints of the 'usr' domain (user accounts).
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.core.exceptions import NotFound

from . import crud as usr_crud
from . import schemas as usr_schemas


router = APIRouter(
    tags=["User Management"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. users endpoints
# =============================================================================
@router.get("/users", response_model=List[usr_schemas.UserRead], summary="List users")
async def read_users(
    page: deps.Pagination = Depends(deps.get_pagination),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Lists users, newest first.
    """
    return await usr_crud.user.get_multi(db, skip=page.skip, limit=page.limit)


@router.post("/users", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="Register a user")
async def create_user(
    user_create: usr_schemas.UserCreate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Registers a user account.
    - `name`, `email`, `password`: required
    - 409: e-mail already registered
    """
    return await usr_crud.user.create(db, obj_in=user_create)


@router.get("/users/{user_id}", response_model=usr_schemas.UserRead, summary="Get a user")
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_user = await usr_crud.user.get(db, user_id)
    if db_user is None:
        raise NotFound(f"User {user_id} not found")
    return db_user


@router.put("/users/{user_id}", response_model=usr_schemas.UserRead, summary="Update a user")
async def update_user(
    user_id: int,
    user_update: usr_schemas.UserUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    Partial update; the password is re-hashed when sent.
    """
    db_user = await usr_crud.user.get(db, user_id)
    if db_user is None:
        raise NotFound(f"User {user_id} not found")
    return await usr_crud.user.update(db, db_obj=db_user, obj_in=user_update)
