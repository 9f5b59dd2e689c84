# tests/conftest.py

import os
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

# Settings are read when app modules are imported; point them at SQLite first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from app.main import app as main_app
from app.core import dependencies as deps
from app.core.database import build_session_factory, create_db_and_tables, get_session
from app.core.security import get_password_hash

from app.domains.fms import models as fms_models
from app.domains.fms import schemas as fms_schemas
from app.domains.fms.services import EquipmentLifecycle
from app.domains.loc import crud as loc_crud
from app.domains.loc import models as loc_models
from app.domains.loc import schemas as loc_schemas
from app.domains.usr import models as usr_models


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "secret-pass-123"


# --- Database fixtures ---
@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh in-memory database per test. StaticPool keeps the single
    connection alive so every session sees the same tables.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_db_and_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = build_session_factory(test_engine)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient whose requests share the test session.
    """
    async def override_get_session():
        yield db_session

    main_app.dependency_overrides[get_session] = override_get_session
    main_app.dependency_overrides[deps.get_db_session] = override_get_session

    transport = ASGITransport(app=main_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    main_app.dependency_overrides.clear()


# --- Factories ---
@pytest_asyncio.fixture(scope="function")
async def city_factory(db_session: AsyncSession) -> Callable[..., Awaitable[loc_models.City]]:
    async def _create(name: str, state_code: str) -> loc_models.City:
        return await loc_crud.city.create(
            db_session, obj_in=loc_schemas.CityCreate(name=name, state_code=state_code)
        )
    return _create


@pytest_asyncio.fixture(scope="function")
async def user_factory(db_session: AsyncSession) -> Callable[..., Awaitable[usr_models.User]]:
    async def _create(email: str = "owner@example.com", name: str = "Owner", **kwargs: Any) -> usr_models.User:
        user = usr_models.User(
            email=email,
            name=name,
            password_hash=get_password_hash(TEST_PASSWORD),
            **kwargs,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create


@pytest_asyncio.fixture(scope="function")
async def test_model(db_session: AsyncSession) -> fms_models.EquipmentModel:
    model = fms_models.EquipmentModel(name="Purifier X1")
    db_session.add(model)
    await db_session.commit()
    await db_session.refresh(model)
    return model


@pytest_asyncio.fixture(scope="function")
async def test_owner(user_factory) -> usr_models.User:
    return await user_factory()


@pytest.fixture(scope="function")
def equipment_payload(test_model: fms_models.EquipmentModel) -> Callable[..., dict]:
    """Builds a valid equipment payload; keyword arguments override fields."""
    def _payload(**overrides: Any) -> dict:
        payload = {
            "model_id": test_model.id,
            "name": "Lobby purifier",
            "serial_number": "SN-0001",
            "installation_date": "2024-03-15",
            "status": "ativo",
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest_asyncio.fixture(scope="function")
async def equipment_factory(
    db_session: AsyncSession, equipment_payload: Callable[..., dict]
) -> Callable[..., Awaitable[fms_models.Equipment]]:
    async def _create(owner: Optional[usr_models.User] = None, **overrides: Any) -> fms_models.Equipment:
        if owner is not None:
            overrides.setdefault("owner_id", owner.id)
        payload = fms_schemas.EquipmentCreate(**equipment_payload(**overrides))
        return await EquipmentLifecycle(db_session).create(payload)
    return _create
