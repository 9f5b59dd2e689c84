# app/core/__init__.py

"""
Core components shared by the whole application.

- `config.py`: settings and environment variables (pydantic-settings).
- `database.py`: async engine, sessions, bounded store access.
- `crud_base.py`: generic async CRUD operations.
- `exceptions.py`: application error hierarchy with HTTP status codes.
- `security.py`: password hashing.
- `dependencies.py`: common FastAPI dependencies.
"""

__title__ = "IceHot Core"
__description__ = "Core components for the IceHot Fleet API."
__version__ = "0.1.0"
__all__ = []
