"""Health and metrics endpoints."""

from fastapi import APIRouter

from ers.config import settings
from ers.services.ratings import get_policy

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/metrics")
async def metrics():
    """Basic metrics endpoint for observability."""
    policy = get_policy()
    return {
        "service": "ers",
        "version": "0.1.0",
        "rating_scale": policy.scale.name,
        "policy_version": policy.version,
        "default_calculation_method": settings.default_calculation_method,
    }
