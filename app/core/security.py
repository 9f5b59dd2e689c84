# app/core/security.py

"""
Password hashing utilities for the user account endpoints.

The API has no authentication layer; hashing only protects the stored
credentials of customer accounts.
"""

import logging

from passlib.context import CryptContext

from app.core.config import settings

logger = logging.getLogger(__name__)


# --- Password hashing ---
# bcrypt with a per-call salt; the cost factor comes from the settings.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.PASSWORD_HASH_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a plain text password against a stored hash.
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hashes a password.
    """
    logger.debug("Hashing password.")
    return pwd_context.hash(password)
