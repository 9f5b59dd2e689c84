# tests/domains/__init__.py

"""
Domain tests: `loc` (cities), `fms` (equipment) and `usr` (users).
"""

__title__ = "IceHot Domain Tests"
__all__ = []
