# app/domains/loc/models.py

"""
Database ORM models of the 'loc' domain.

Cities are created lazily by the city resolver and never updated or
removed by the API. `search_name` holds the accent-free, lowercase form
of `name` so that the resolver can narrow candidates portably on any
database collation.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


if TYPE_CHECKING:
    from app.domains.fms.models import Equipment
    from app.domains.usr.models import User


# =============================================================================
# 1. cities table
# =============================================================================
class CityBase(SQLModel):
    """
    Basic attributes of the cities table.
    """
    name: str = Field(max_length=120, description="City name as typed by the user")
    state_code: Optional[str] = Field(default=None, max_length=2, description="Federative unit (UF), e.g. MG")


class City(CityBase, table=True):
    """
    ORM class mapped to the cities table.
    """
    __tablename__ = "cities"
    __table_args__ = (
        UniqueConstraint("search_name", "state_code", name="uq_cities_search_name_state_code"),
    )

    id: Optional[int] = Field(default=None, primary_key=True, description="City id")
    search_name: str = Field(default="", max_length=120, index=True, description="Normalized name used for lookups")
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="Row creation time"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="Row last update time"
    )

    # --- Relationships (one-to-many) ---
    equipments: List["Equipment"] = Relationship(back_populates="city")
    users: List["User"] = Relationship(back_populates="city")
