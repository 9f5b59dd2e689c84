# app/utils/__init__.py

"""
General purpose utilities that do not belong to a single business domain.

Submodules:
- `normalizers.py`: status codes, accent-insensitive names and "City/UF" parsing.
"""

__title__ = "IceHot Application Utilities"
__description__ = "Provides common, reusable utility functions for the application."
__version__ = "0.1.0"
__all__ = ["normalizers"]
