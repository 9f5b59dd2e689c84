# app/core/exceptions.py

"""
Application error hierarchy.

Every error carries the HTTP status the API layer answers with, so the
services can raise domain errors without importing FastAPI. `main.py`
turns any `AppError` into a JSON response.
"""

from typing import List, Optional

from fastapi import status


class AppError(Exception):
    """Base exception for application errors."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(AppError):
    """Raised when required fields are missing or malformed."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    @classmethod
    def missing(cls, fields: List[str]) -> "ValidationError":
        return cls(f"Missing required fields: {', '.join(fields)}", fields=fields)


class CityCreationRequiresState(AppError):
    """Raised when an unknown city has to be created but no state code was given."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(AppError):
    """Raised when no row matches the requested id."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Base class for uniqueness and ambiguity conflicts."""
    status_code = status.HTTP_409_CONFLICT


class DuplicateSerial(ConflictError):
    """Raised when a serial number is already used by a non-deleted equipment."""
    pass


class AmbiguousCity(ConflictError):
    """Raised when a city name matches more than one stored city."""
    pass


class DuplicateEmail(ConflictError):
    """Raised when a user e-mail is already registered."""
    pass


class StoreError(AppError):
    """Raised when a database operation fails."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StoreTimeout(StoreError):
    """Raised when a database operation exceeds its time bound."""
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
