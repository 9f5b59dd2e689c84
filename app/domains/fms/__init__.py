# app/domains/fms/__init__.py

"""
The 'fms' (fleet management) domain package.

Manages equipment models (types), equipment installed at customer sites,
the owner/module association of each equipment and its filter
replacement history.

Submodules:
- `models.py`: table models and the `EquipmentStatus` codes.
- `schemas.py`: request/response schemas and the typed notes blob.
- `crud.py`: async queries.
- `services.py`: ModuleReconciler and EquipmentLifecycle.
- `routers.py`: equipment and model endpoints.
"""

__title__ = "IceHot FMS Domain"
__description__ = "Manages equipment, equipment models, modules and filter history."
__version__ = "0.1.0"
__all__ = []
