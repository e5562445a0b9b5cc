"""Admin request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ers.schemas.enums import Track


class WeightProfileRequest(BaseModel):
    """POST /v1/admin/weight-profiles request. Weights must sum to 1.0."""

    name: str = Field(min_length=1)
    track: Track
    role: str = "all"
    weights: dict[str, float]
    is_default: bool = False
    description: str | None = None


class WeightProfileResponse(BaseModel):
    profile_id: str
    name: str
    track: Track
    role: str
    version: int
    weights: dict[str, float]
    is_default: bool
    is_active: bool
    description: str | None = None
    created_at: datetime
