# app/domains/loc/services.py

"""
City resolution service.

Turns a free text city name (optionally with a state code) into the id
of a stored city. Names arrive from several front-end forms with
inconsistent accents and capitalisation, so the lookup runs in three
tiers and stops at the first unique hit:

1. exact match, case-insensitive and trimmed;
2. accent-insensitive match: candidates narrowed by the first characters
   of the normalized name, then compared in-process with `normalize_name`;
3. creation of the city, which requires a state code.

More than one match in a tier is reported as an ambiguity instead of
picking one, so duplicate cities are never chosen silently.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.exceptions import AmbiguousCity, CityCreationRequiresState, StoreError, ValidationError
from app.utils.normalizers import normalize_name, split_city_uf
from . import crud as loc_crud
from . import models as loc_models
from . import schemas as loc_schemas

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 4


def _label(city: loc_models.City) -> str:
    return f"{city.name}/{city.state_code}" if city.state_code else city.name


class CityResolver:
    """
    Resolves city names to ids using the request's database session.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_text(self, text: str, state_code: Optional[str] = None) -> loc_models.City:
        """
        Resolves "Name" or "Name/UF". An explicit `state_code` wins over the
        one written after the slash.
        """
        name, uf = split_city_uf(text)
        return await self.resolve(name, state_code or uf)

    async def resolve(self, name: str, state_code: Optional[str] = None) -> loc_models.City:
        name = (name or "").strip()
        uf = state_code.strip().upper() if state_code and state_code.strip() else None
        if not name:
            raise ValidationError.missing(["city"])

        found = await self._lookup(name, uf)
        if found is not None:
            return found

        if not uf:
            raise CityCreationRequiresState(
                f'City "{name}" not found. Provide the state code to register it (e.g. "{name}/UF").'
            )
        if len(uf) != 2 or not uf.isalpha():
            raise ValidationError(f'Invalid state code "{uf}"', fields=["state_code"])

        try:
            return await loc_crud.city.create(self.db, obj_in=loc_schemas.CityCreate(name=name, state_code=uf))
        except StoreError as e:
            # Another request registered the same city first; the unique
            # constraint rejected ours, so read the winner back.
            if not isinstance(e.original_error, IntegrityError):
                raise
            logger.warning("Concurrent creation of city %s/%s, reloading", name, uf)
            found = await self._lookup(name, uf)
            if found is None:
                raise
            return found

    async def _lookup(self, name: str, uf: Optional[str]) -> Optional[loc_models.City]:
        # Tier 1: exact name.
        exact = await loc_crud.city.find_exact(self.db, name=name, state_code=uf)
        hit = self._unique(exact, name, uf)
        if hit is not None:
            logger.debug("City '%s' resolved by exact match -> %s", name, hit.id)
            return hit

        # Tier 2: accent-insensitive comparison over prefix candidates.
        target = normalize_name(name)
        candidates = await loc_crud.city.find_by_prefix(self.db, prefix=target[:PREFIX_LENGTH], state_code=uf)
        matches = [c for c in candidates if normalize_name(c.name) == target]
        hit = self._unique(matches, name, uf)
        if hit is not None:
            logger.debug("City '%s' resolved by normalized match -> %s", name, hit.id)
        return hit

    @staticmethod
    def _unique(rows: List[loc_models.City], name: str, uf: Optional[str]) -> Optional[loc_models.City]:
        if not rows:
            return None
        if len(rows) == 1:
            return rows[0]
        conflicting = ", ".join(_label(c) for c in rows)
        requested = f"{name}/{uf}" if uf else name
        hint = "" if uf else f' Specify the state code (e.g. "{name}/UF").'
        logger.warning("Ambiguous city '%s': %s", requested, conflicting)
        raise AmbiguousCity(f'Ambiguous city "{requested}": matches {conflicting}.{hint}')


async def resolve_city(db: AsyncSession, name: str, state_code: Optional[str] = None) -> int:
    """Resolves "Name" or "Name/UF" to a city id."""
    city = await CityResolver(db).resolve_text(name, state_code)
    return city.id
