# app/domains/usr/schemas.py

"""
Pydantic schemas of the 'usr' domain (user accounts).
"""

from typing import Optional
from datetime import datetime

from pydantic import EmailStr
from sqlmodel import SQLModel, Field


# =============================================================================
# 1. users schemas
# =============================================================================
class UserBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    city_id: Optional[int] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    number: Optional[str] = Field(None, max_length=20)
    district: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    type: Optional[int] = None
    photo: Optional[str] = Field(None, max_length=255)
    notifications: bool = True
    notification_emails: Optional[str] = Field(None, max_length=500)


class UserCreate(UserBase):
    """User registration schema."""
    password: str = Field(..., min_length=8)


class UserUpdate(SQLModel):
    """
    Partial update. Only the fields actually sent are applied; null clears
    the contact, address, photo and city fields. A new password is re-hashed.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    city_id: Optional[int] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    number: Optional[str] = None
    district: Optional[str] = None
    zip_code: Optional[str] = None
    complement: Optional[str] = None
    type: Optional[int] = None
    photo: Optional[str] = None
    notifications: Optional[bool] = None
    notification_emails: Optional[str] = None


class UserRead(UserBase):
    """
    User as returned by the API. The password hash is never exposed.
    """
    id: int
    email: str
    email_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
