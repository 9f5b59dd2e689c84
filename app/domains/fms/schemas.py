# app/domains/fms/schemas.py

"""
Pydantic schemas of the 'fms' domain.

Request and response models for equipment models, equipment, module
associations and filter replacements, plus `EquipmentNotes`, the typed
form of the JSON blob stored in `equipments.notes`.
"""

import json
from typing import Any, Dict, Optional, Union
from datetime import datetime, date

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


# =============================================================================
# 1. equipment_models schemas
# =============================================================================
class EquipmentModelCreate(SQLModel):
    name: str = Field(..., min_length=1, max_length=100, description="Model (type) name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class EquipmentModelUpdate(EquipmentModelCreate):
    """All fields optional (partial update)."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class EquipmentModelResponse(SQLModel):
    id: int
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 2. Module flags and the equipment metadata blob
# =============================================================================
class ModuleFlags(SQLModel):
    """Feature modules enabled on an equipment. Values are coerced to bool."""
    cold_water: bool = Field(False, description="Cold water module")
    hot_water: bool = Field(False, description="Hot water module")
    pet_fountain: bool = Field(False, description="Pet fountain module")


class EquipmentNotes(SQLModel):
    """
    Typed view of the metadata blob kept in `equipments.notes`.

    The stored text is parsed once. Text that is not a JSON object (legacy
    free-form observations) becomes `text`; keys other than the two known
    ones, and values of the wrong type, are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None
    sprinkler_enabled: Optional[bool] = None

    @classmethod
    def parse(cls, raw: Union[str, Dict[str, Any], None]) -> "EquipmentNotes":
        if raw is None:
            return cls()
        if isinstance(raw, dict):
            data = raw
        else:
            raw = str(raw).strip()
            if not raw:
                return cls()
            try:
                data = json.loads(raw)
            except ValueError:
                return cls(text=raw)
            if not isinstance(data, dict):
                return cls(text=raw)

        text = data.get("text")
        sprinkler = data.get("sprinkler_enabled")
        return cls(
            text=text if isinstance(text, str) else None,
            sprinkler_enabled=sprinkler if isinstance(sprinkler, bool) else None,
        )

    @classmethod
    def from_observation(cls, raw: Union[str, Dict[str, Any], None]) -> "EquipmentNotes":
        """
        Notes carried by an incoming `observation`. Known keys are read as in
        `parse`; a JSON object with neither known key is kept verbatim as `text`.
        """
        notes = cls.parse(raw)
        if raw is None or not notes.is_empty():
            return notes
        if isinstance(raw, dict):
            data, text = raw, json.dumps(raw, ensure_ascii=False)
        else:
            text = str(raw).strip()
            if not text:
                return notes
            data = json.loads(text)
        if not data or data.keys() & cls.model_fields.keys():
            return notes
        return cls(text=text)

    def merge(self, other: "EquipmentNotes") -> "EquipmentNotes":
        """Returns a copy with the fields present in `other` applied over this one."""
        return self.model_copy(update=other.model_dump(exclude_none=True))

    def is_empty(self) -> bool:
        return self.text is None and self.sprinkler_enabled is None

    def dump(self) -> Optional[str]:
        """JSON text to store, or None when there is nothing to keep."""
        if self.is_empty():
            return None
        return self.model_dump_json(exclude_none=True)


# =============================================================================
# 3. equipments schemas
# =============================================================================
class EquipmentCreate(SQLModel):
    """
    Equipment registration payload.

    Every field is optional at the schema level: required fields are
    checked by the lifecycle service so that all missing ones are
    reported together.
    - `city`: free text, "Name" or "Name/UF"
    - `status`: code (0-3) or token ("ativo", "atendimento", ...)
    - `observation` / `sprinkler_enabled`: stored in the notes blob
    - `owner_id` / `modules`: owner association and enabled modules
    """
    model_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    invoice_number: Optional[str] = Field(None, max_length=100)
    equipment_serial_number: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=160)
    zip_code: Optional[str] = Field(None, max_length=20)
    district: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    number: Optional[str] = Field(None, max_length=20)
    complement: Optional[str] = Field(None, max_length=100)
    installation_date: Optional[date] = None
    status: Optional[Union[int, str]] = None
    observation: Optional[Union[str, Dict[str, Any]]] = None
    sprinkler_enabled: Optional[bool] = None
    owner_id: Optional[int] = None
    modules: Optional[ModuleFlags] = None


class EquipmentUpdate(EquipmentCreate):
    """
    Equipment update payload. A body holding only `status` is a status
    toggle; anything else is a full update.
    """
    pass


class EquipmentResponse(SQLModel):
    id: int
    model_id: int
    city_id: Optional[int] = None
    city_name: Optional[str] = None
    name: str
    serial_number: str
    invoice_number: Optional[str] = None
    equipment_serial_number: Optional[str] = None
    zip_code: Optional[str] = None
    district: Optional[str] = None
    address: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    installation_date: date
    status: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 4. owner_module_associations schemas
# =============================================================================
class ModuleReplaceRequest(ModuleFlags):
    owner_id: int = Field(..., gt=0, description="Owning user id")


class ModuleAssociationResponse(ModuleFlags):
    id: int
    owner_id: int
    equipment_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 5. filter_replacements schemas
# =============================================================================
class FilterReplacementCreate(SQLModel):
    filter_type: str = Field(..., min_length=1, max_length=50)
    filter_name: Optional[str] = Field(None, max_length=100)
    replaced_on: date
    flow_rate: Optional[float] = Field(None, ge=0)


class FilterReplacementResponse(FilterReplacementCreate):
    id: int
    equipment_id: int
    created_at: Optional[datetime] = None
