# app/main.py

"""
FastAPI application entry point.

Configures logging, registers the domain routers under API_PREFIX, turns
application errors into JSON responses and exposes the service endpoints
(`/`, `/ping`, `/health`).
"""

import logging
from typing import AsyncGenerator, List
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app import API_PREFIX
from app.core.config import settings
from app.core.database import engine, get_session, run_with_timeout
from app.core.exceptions import AppError, StoreError, ValidationError

from app.domains.usr.routers import router as usr_router
from app.domains.loc.routers import router as loc_router
from app.domains.fms.routers import router as fms_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# -- Application lifespan --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Releases the connection pool on shutdown.
    """
    logger.info("%s %s starting (env=%s)", settings.APP_NAME, settings.APP_VERSION, settings.APP_ENV)

    yield

    logger.info("%s shutting down", settings.APP_NAME)
    await engine.dispose()
    logger.info("Database connection pool closed.")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -- CORS --
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -- Error handlers --
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.original_error)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)

    content = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        content["fields"] = exc.fields
    return JSONResponse(status_code=exc.status_code, content=content)


def _error_fields(exc: RequestValidationError) -> List[str]:
    fields: List[str] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return fields


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = _error_fields(exc)
    logger.warning("%s %s invalid fields: %s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": f"Invalid fields: {', '.join(fields)}", "fields": fields},
    )


# -- Domain routers --
app.include_router(loc_router, prefix=f"{API_PREFIX}/loc")
app.include_router(fms_router, prefix=f"{API_PREFIX}/fms")
app.include_router(usr_router, prefix=f"{API_PREFIX}/usr")


# -- Service endpoints --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


@app.get("/ping", response_class=PlainTextResponse, summary="Liveness probe")
async def ping():
    """
    Answers without touching the database.
    """
    return "pong"


@app.get("/health", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    Runs `SELECT 1` within HEALTH_CHECK_TIMEOUT.
    - 504: database timeout
    - 500: any other database failure
    """
    try:
        result = await run_with_timeout(
            session.execute(text("SELECT 1")), settings.HEALTH_CHECK_TIMEOUT, "health check"
        )
    except StoreError:
        raise
    except Exception as e:
        raise StoreError(f"Database connection error during health check: {e}", original_error=e) from e

    if result.scalar() != 1:
        raise StoreError("Database health check failed: no result from test query")
    return {"status": "ok", "database_connection": "successful"}
