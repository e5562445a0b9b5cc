"""Weight profile store."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ers.engine.weights import validate_weights
from ers.models import WeightProfileRecord
from ers.schemas.admin import WeightProfileRequest
from ers.storage.repositories import create_weight_profile_version

logger = logging.getLogger(__name__)


async def save_weight_profile(
    db: AsyncSession, body: WeightProfileRequest
) -> WeightProfileRecord:
    """Validate and store a new profile version."""
    validate_weights(body.weights)
    profile = await create_weight_profile_version(
        db,
        name=body.name,
        track=body.track.value,
        role=body.role,
        weights=body.weights,
        is_default=body.is_default,
        description=body.description,
    )
    logger.info(
        "Weight profile %s v%d saved for %s/%s%s",
        profile.name,
        profile.version,
        profile.track,
        profile.role,
        " (default)" if profile.is_default else "",
    )
    return profile
