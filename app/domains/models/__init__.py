# app/domains/models/__init__.py

"""
Imports every table model in one place so that SQLModel.metadata knows
all tables before `create_all` runs and relationship targets resolve.
"""

# loc
from app.domains.loc.models import City

# usr
from app.domains.usr.models import User

# fms
from app.domains.fms.models import (
    EquipmentStatus, EquipmentModel, Equipment, OwnerModuleAssociation, FilterReplacement
)


__all__ = [
    # loc
    "City",
    # usr
    "User",
    # fms
    "EquipmentStatus", "EquipmentModel", "Equipment", "OwnerModuleAssociation", "FilterReplacement",
]
