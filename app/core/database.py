# app/core/database.py

"""
Database connection and session management.

- Creates the single async engine (connection pool) owned by the process.
- Provides the per-request session dependency and a standalone session
  context manager for scripts.
- Bounds every store call with `run_with_timeout`, which turns timeouts
  and driver failures into the application's store errors.
- Creates the tables on demand (development and tests; no migrations).
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Awaitable, Dict, TypeVar
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.exceptions import StoreError, StoreTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options for the configured backend. SQLite manages its own pool."""
    if url.startswith("sqlite"):
        return {}
    options: Dict[str, Any] = {
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }
    if url.startswith("postgresql+asyncpg"):
        options["connect_args"] = {"timeout": settings.DB_CONNECT_TIMEOUT}
    return options


def build_engine(url: str) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=settings.DEBUG_MODE,  # SQL echo only in debug mode
        future=True,
        **_engine_options(url),
    )


def build_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine: AsyncEngine = build_engine(settings.DATABASE_URL.get_secret_value())

AsyncSessionLocal = build_session_factory(engine)

metadata = SQLModel.metadata


# =============================================================================
# Bounded store access
# =============================================================================
async def run_with_timeout(awaitable: Awaitable[T], seconds: float, label: str = "db") -> T:
    """
    Awaits a store operation for at most `seconds`.

    A timeout raises `StoreTimeout`; any SQLAlchemy failure raises
    `StoreError`. The abandoned operation may still complete on the
    server side.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        logger.error("Store operation '%s' exceeded %.1fs", label, seconds)
        raise StoreTimeout(f"Database timeout ({label})", original_error=e) from e
    except SQLAlchemyError as e:
        logger.error("Store operation '%s' failed: %s", label, e, exc_info=True)
        raise StoreError(f"Database error ({label})", original_error=e) from e


# =============================================================================
# Table creation (development / tests)
# =============================================================================
async def create_db_and_tables(bind: AsyncEngine = None) -> None:
    """
    Creates every registered table. Existing tables are left untouched.
    """
    # Registers every table model on SQLModel.metadata.
    from app.domains import models  # noqa: F401

    target = bind or engine
    logger.info("Creating database tables (if missing)...")
    async with target.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ready.")


# =============================================================================
# Session dependencies
# =============================================================================
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: one session per request, closed (and its
    connection returned to the pool) when the request finishes.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Standalone session for scripts: commits on success, rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
