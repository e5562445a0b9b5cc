"""Admin endpoints - weight profiles, calculation methods, archiving."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ers.api.errors import http_error
from ers.api.ratings import rating_response
from ers.database import get_db
from ers.engine.aggregator import METHOD_ALIASES, STRATEGIES
from ers.engine.weights import BUILTIN_PROFILES
from ers.errors import RatingError
from ers.models import WeightProfileRecord
from ers.schemas.admin import WeightProfileRequest, WeightProfileResponse
from ers.schemas.enums import CalculationMethod, GatingMode, Track
from ers.schemas.rating import FinalRatingResponse
from ers.services.profiles import save_weight_profile
from ers.services.ratings import archive_rating, get_policy
from ers.storage.repositories import get_rating, list_weight_profiles

router = APIRouter()


def profile_response(row: WeightProfileRecord) -> WeightProfileResponse:
    return WeightProfileResponse(
        profile_id=str(row.profile_id),
        name=row.name,
        track=Track(row.track),
        role=row.role,
        version=row.version,
        weights=row.weights,
        is_default=row.is_default,
        is_active=row.is_active,
        description=row.description,
        created_at=row.created_at,
    )


@router.post("/weight-profiles", response_model=WeightProfileResponse, status_code=201)
async def create_weight_profile(
    body: WeightProfileRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a profile or a new version of an existing (name, track, role)."""
    try:
        profile = await save_weight_profile(db, body)
    except RatingError as exc:
        raise http_error(exc) from exc
    return profile_response(profile)


@router.get("/weight-profiles")
async def get_weight_profiles(
    db: Annotated[AsyncSession, Depends(get_db)],
    track: Track | None = None,
    role: str | None = None,
):
    """Active stored profiles plus the built-in fallbacks."""
    rows = await list_weight_profiles(
        db, track=track.value if track else None, roles=[role] if role else None
    )
    return {
        "profiles": [profile_response(r).model_dump() for r in rows],
        "builtin": [
            p.model_dump() for t, p in BUILTIN_PROFILES.items() if track is None or t == track
        ],
    }


@router.get("/calculation-methods")
async def calculation_methods():
    """Selectable calculation methods, aliases and gating modes."""
    policy = get_policy()
    return {
        "methods": [m.value for m in STRATEGIES],
        "aliases": {alias: m.value for alias, m in METHOD_ALIASES.items()},
        "dispute_only": [CalculationMethod.DISPUTE_OVERRIDE.value],
        "gating_modes": [g.value for g in GatingMode],
        "strict": policy.strict_methods,
        "hybrid_critical_weight": policy.hybrid_critical_weight,
    }


@router.post("/ratings/{rating_id}/archive", response_model=FinalRatingResponse)
async def archive(
    rating_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Archive a superseded rating."""
    rating = await get_rating(db, rating_id)
    if not rating:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found")
    try:
        await archive_rating(db, rating)
    except RatingError as exc:
        raise http_error(exc) from exc
    return rating_response(rating)
