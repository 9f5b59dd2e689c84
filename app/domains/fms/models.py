# app/domains/fms/models.py

"""
Database ORM models of the 'fms' domain (fleet management).

Tables: equipment models (types), equipment installed at customer sites,
the owner/module association of each equipment and the filter
replacement history.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, date, UTC
from enum import IntEnum
from sqlalchemy import ForeignKey, Integer, Numeric, Text
from sqlalchemy.types import TIMESTAMP
from sqlalchemy.sql import func
from sqlmodel import Field, Relationship, SQLModel, Column


if TYPE_CHECKING:
    from app.domains.loc.models import City
    from app.domains.usr.models import User


class EquipmentStatus(IntEnum):
    """
    Equipment status codes stored as integers.
    DELETED marks a soft-deleted row and is terminal.
    """
    ACTIVE = 0
    IN_SERVICE = 1
    DEACTIVATED = 2
    DELETED = 3


# =============================================================================
# 1. equipment_models table (equipment types)
# =============================================================================
class EquipmentModelBase(SQLModel):
    name: str = Field(max_length=100, description="Model (type) name")


class EquipmentModel(EquipmentModelBase, table=True):
    __tablename__ = "equipment_models"

    id: Optional[int] = Field(default=None, primary_key=True)
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

    # --- Relationships ---
    equipments: List["Equipment"] = Relationship(back_populates="equipment_model")


# =============================================================================
# 2. equipments table
# =============================================================================
class EquipmentBase(SQLModel):
    model_id: int = Field(foreign_key="equipment_models.id")
    city_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("cities.id", ondelete="RESTRICT"), nullable=True)
    )
    name: str = Field(max_length=100)
    # Unique among non-deleted rows only; checked by the lifecycle service.
    serial_number: str = Field(max_length=100, index=True)
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    equipment_serial_number: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    district: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=255)
    number: Optional[str] = Field(default=None, max_length=20)
    complement: Optional[str] = Field(default=None, max_length=100)
    installation_date: date = Field()
    status: int = Field(default=EquipmentStatus.ACTIVE, index=True)
    # JSON text: {"text": ..., "sprinkler_enabled": ...}
    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))


class Equipment(EquipmentBase, table=True):
    __tablename__ = "equipments"

    id: Optional[int] = Field(default=None, primary_key=True)
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

    # --- Relationships (many-to-one) ---
    equipment_model: "EquipmentModel" = Relationship(back_populates="equipments")
    city: Optional["City"] = Relationship(back_populates="equipments")

    # --- Relationships (one-to-many) ---
    module_associations: List["OwnerModuleAssociation"] = Relationship(back_populates="equipment")
    filter_replacements: List["FilterReplacement"] = Relationship(back_populates="equipment")


# =============================================================================
# 3. owner_module_associations table
#    One row per equipment (unique equipment_id); replaced, never patched.
# =============================================================================
class OwnerModuleAssociationBase(SQLModel):
    owner_id: int = Field(foreign_key="users.id", index=True)
    equipment_id: int = Field(foreign_key="equipments.id", unique=True)
    cold_water: bool = Field(default=False, description="Cold water module enabled")
    hot_water: bool = Field(default=False, description="Hot water module enabled")
    pet_fountain: bool = Field(default=False, description="Pet fountain module enabled")


class OwnerModuleAssociation(OwnerModuleAssociationBase, table=True):
    __tablename__ = "owner_module_associations"

    id: Optional[int] = Field(default=None, primary_key=True)
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

    # --- Relationships ---
    equipment: "Equipment" = Relationship(back_populates="module_associations")
    owner: "User" = Relationship(back_populates="module_associations")


# =============================================================================
# 4. filter_replacements table (append-only history)
# =============================================================================
class FilterReplacementBase(SQLModel):
    equipment_id: int = Field(foreign_key="equipments.id", index=True)
    filter_type: str = Field(max_length=50)
    filter_name: Optional[str] = Field(default=None, max_length=100)
    replaced_on: date = Field()
    flow_rate: Optional[float] = Field(default=None, sa_column=Column(Numeric(12, 2)))


class FilterReplacement(FilterReplacementBase, table=True):
    __tablename__ = "filter_replacements"

    id: Optional[int] = Field(default=None, primary_key=True)
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

    # --- Relationships ---
    equipment: "Equipment" = Relationship(back_populates="filter_replacements")
