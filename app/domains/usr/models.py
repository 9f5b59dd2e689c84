# app/domains/usr/models.py

"""
Database ORM models of the 'usr' domain (user accounts).
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import datetime, UTC
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Integer
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


if TYPE_CHECKING:
    from app.domains.loc.models import City
    from app.domains.fms.models import OwnerModuleAssociation


# =============================================================================
# 1. users table
# =============================================================================
class UserBase(SQLModel):
    """
    Columns of the users table shared with the schemas.
    """
    city_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("cities.id", ondelete="SET NULL"), nullable=True),
        description="City of the user (FK)"
    )
    name: str = Field(max_length=255, description="Full name")
    email: str = Field(max_length=255, sa_column_kwargs={"unique": True}, description="Login e-mail")
    email_verified_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=True),
        description="E-mail confirmation time"
    )
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    number: Optional[str] = Field(default=None, max_length=20)
    district: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    complement: Optional[str] = Field(default=None, max_length=100)
    type: Optional[int] = Field(default=None, description="Account type code")
    photo: Optional[str] = Field(default=None, max_length=255, description="Photo path or URL")
    notifications: bool = Field(default=True, description="Receives notifications")
    notification_emails: Optional[str] = Field(default=None, max_length=500, description="Extra notification addresses")


class User(UserBase, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: str = Field(max_length=255, description="bcrypt hash")
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
    city: Optional["City"] = Relationship(back_populates="users")
    module_associations: List["OwnerModuleAssociation"] = Relationship(back_populates="owner")
