# tests/__init__.py

"""
Test suite of the IceHot Fleet API.

- `conftest.py`: fixtures (in-memory SQLite database per test, HTTP client,
  factories for cities, users, equipment models and equipment).
- `test_main.py`: service endpoints and error mapping.
- `test_normalizers.py`: pure normalization helpers.
- `domains/`: one module per business domain.
"""

__title__ = "IceHot Fleet API Tests"
__description__ = "Test suite for the IceHot Fleet FastAPI application."
__version__ = "0.1.0"
__all__ = []
