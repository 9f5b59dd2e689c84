# app/domains/usr/__init__.py

"""
The 'usr' domain package: customer and staff user accounts.

Submodules:
- `models.py`: User table model.
- `schemas.py`: request/response schemas (the password hash is never returned).
- `crud.py`: async user queries, password hashing and e-mail uniqueness.
- `routers.py`: user endpoints.
"""

__title__ = "IceHot User Domain"
__description__ = "Manages user accounts."
__version__ = "0.1.0"
__all__ = []
