# app/__init__.py

"""
IceHot Fleet API main package.

The package holds the FastAPI entry point (main.py), the `core` subpackage
with configuration, database and error handling shared by every domain,
and the `domains` subpackage with one folder per business area
(loc: cities, fms: equipment, usr: customer accounts).
"""

APP_NAME = "IceHot Fleet API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # common prefix applied to every domain router in main.py

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Equipment/fleet management API backend."
__all__ = []
