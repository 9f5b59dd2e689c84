# app/domains/loc/__init__.py

"""
The 'loc' domain package: cities referenced by equipment and users.

Submodules:
- `models.py`: City table model.
- `schemas.py`: request/response schemas.
- `crud.py`: async city queries.
- `services.py`: CityResolver (exact, accent-insensitive and creation tiers).
- `routers.py`: city endpoints.
"""

__title__ = "IceHot Location Domain"
__description__ = "Manages cities and resolves free text city names."
__version__ = "0.1.0"
__all__ = []
