# app/core/dependencies.py

"""
FastAPI dependency injection helpers.

- Database session per request (get_db_session).
- Listing parameters shared by the list endpoints (Pagination).
"""

from typing import AsyncGenerator
from dataclasses import dataclass

from fastapi import Query
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.crud_base import clamp_limit

# The actual session generator.
from app.core.database import get_session as get_main_app_session


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async session dependency wrapping app.core.database.get_session.
    """
    async for session in get_main_app_session():
        yield session


@dataclass
class Pagination:
    skip: int
    limit: int


def get_pagination(
    skip: int = Query(0, ge=0, description="Rows to skip"),
    limit: int = Query(settings.PAGE_DEFAULT_LIMIT, description="Rows to return (clamped to 1..200)"),
) -> Pagination:
    return Pagination(skip=skip, limit=clamp_limit(limit))
