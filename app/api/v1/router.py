"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from app.api.v1 import appointments, barbers

router = APIRouter()

# Include all sub-routers
router.include_router(appointments.router)
router.include_router(barbers.router)


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "message": "BarberQ API is running"}
