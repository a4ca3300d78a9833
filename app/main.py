"""FastAPI application entry point for BarberQ."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import router as api_v1_router
from app.config import get_settings
from app.database import engine
from app.services.errors import (
    ConflictError,
    NotFoundError,
    SaturationError,
    SchedulingError,
    StoreUnavailableError,
    ValidationError,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after a store failure
RETRY_AFTER_SECONDS = 2


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - startup and shutdown events."""
    # Startup
    logger.info("Starting BarberQ API...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Database: {settings.database_url.split('@')[-1]}")  # Hide credentials

    # Test database connection
    try:
        async with engine.connect():
            logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")

    yield

    # Shutdown
    logger.info("Shutting down BarberQ API...")
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="BarberQ API",
    description="Slot and walk-in queue scheduling for barbershops",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _status_for(exc: SchedulingError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (ConflictError, SaturationError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, StoreUnavailableError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Map the scheduling error taxonomy onto HTTP responses."""
    body = {
        "reason": exc.reason_code,
        "detail": exc.message,
        "retryable": exc.retryable,
        "alternatives": [],
    }
    if isinstance(exc, SaturationError):
        body["alternatives"] = [a.model_dump(mode="json") for a in exc.alternatives]
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors

    headers = None
    if isinstance(exc, StoreUnavailableError):
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}

    return JSONResponse(status_code=_status_for(exc), content=body, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query or body parameters use the same error body."""
    errors = [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "reason": ValidationError.reason_code,
            "detail": "Invalid request",
            "retryable": False,
            "alternatives": [],
            "errors": errors,
        },
    )


# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "BarberQ API",
        "version": "0.1.0",
        "description": "Barbershop slot and queue scheduler",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Global health check."""
    return {"status": "ok"}
