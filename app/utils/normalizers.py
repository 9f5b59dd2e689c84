# app/utils/normalizers.py

"""
Pure functions that turn free text coming from the front-end forms into
canonical values: equipment status codes, comparable city names and the
"City/UF" notation.
"""

import re
import unicodedata
from typing import Any, Optional, Tuple

from app.domains.fms.models import EquipmentStatus

# Tokens accepted for each status (compared stripped and lowercased).
STATUS_TOKENS = {
    "0": EquipmentStatus.ACTIVE,
    "ativo": EquipmentStatus.ACTIVE,
    "active": EquipmentStatus.ACTIVE,
    "1": EquipmentStatus.IN_SERVICE,
    "atendimento": EquipmentStatus.IN_SERVICE,
    "in_service": EquipmentStatus.IN_SERVICE,
    "2": EquipmentStatus.DEACTIVATED,
    "desativado": EquipmentStatus.DEACTIVATED,
    "deactivated": EquipmentStatus.DEACTIVATED,
    "3": EquipmentStatus.DELETED,
    "deletado": EquipmentStatus.DELETED,
    "deleted": EquipmentStatus.DELETED,
}

_WHITESPACE = re.compile(r"\s+")


def normalize_status(value: Any) -> EquipmentStatus:
    """
    Maps a status token to its code. Unknown or missing input yields ACTIVE.
    """
    if isinstance(value, EquipmentStatus):
        return value
    raw = str(value if value is not None else "").strip().lower()
    return STATUS_TOKENS.get(raw, EquipmentStatus.ACTIVE)


def normalize_name(text: Optional[str]) -> str:
    """
    Lowercases, trims and strips diacritics so that "São Paulo" and
    "sao paulo" compare equal.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def split_city_uf(text: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Splits "Belo Horizonte/MG" into ("Belo Horizonte", "MG").
    Without a slash (or with an empty right side) the state code is None.
    """
    raw = str(text or "").strip()
    name, sep, uf = raw.partition("/")
    uf = uf.strip().upper() if sep else ""
    return name.strip(), (uf or None)
