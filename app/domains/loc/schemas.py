# app/domains/loc/schemas.py

"""
Request and response schemas of the 'loc' domain.
"""

from typing import Optional
from datetime import datetime

from sqlmodel import SQLModel
from pydantic import Field


# =============================================================================
# 1. cities
# =============================================================================
class CityCreate(SQLModel):
    name: str = Field(..., max_length=120)
    state_code: str = Field(..., min_length=2, max_length=2)


class CityResponse(SQLModel):
    """
    City as returned to clients.
    """
    id: int = Field(..., description="City id")
    name: str
    state_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CityResolveRequest(SQLModel):
    """
    Free text city, optionally in "Name/UF" notation. An explicit
    `state_code` takes precedence over the one found after the slash.
    """
    city: str = Field(..., min_length=1, description='City name or "Name/UF"')
    state_code: Optional[str] = Field(None, max_length=2, description="Federative unit (UF)")


class CityResolveResponse(SQLModel):
    id: int
    name: str
    state_code: Optional[str] = None
