"""Component weight profiles: validation, built-in defaults and resolution."""

from pydantic import BaseModel, field_validator

from ers.errors import RatingValidationError
from ers.schemas.enums import Track

WEIGHT_SUM_TOLERANCE = 0.01
ALL_ROLES = "all"


def weight_problems(weights: dict[str, float]) -> list[str]:
    """List every reason a component weight set is invalid (empty list if valid)."""
    problems = []
    if not weights:
        return ["at least one component weight is required"]
    for component_id, weight in sorted(weights.items()):
        if weight < 0 or weight > 1:
            problems.append(f"weight for '{component_id}' must be between 0 and 1")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        problems.append(f"weights must sum to 1.0 (got {total:.4f})")
    return problems


def validate_weights(weights: dict[str, float]) -> dict[str, float]:
    """Reject a component weight set at write time."""
    problems = weight_problems(weights)
    if problems:
        raise RatingValidationError("; ".join(problems))
    return weights


class WeightProfile(BaseModel):
    """Immutable snapshot of one versioned weight profile."""

    model_config = {"frozen": True}

    name: str
    track: Track
    role: str = ALL_ROLES
    version: int = 1
    is_default: bool = False
    weights: dict[str, float]

    @field_validator("weights")
    @classmethod
    def weights_sum_to_one(cls, v: dict[str, float]) -> dict[str, float]:
        problems = weight_problems(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v


PROJECT_DEFAULT = WeightProfile(
    name="builtin_project",
    track=Track.PROJECT,
    is_default=True,
    weights={
        "cbus_compliance": 0.15,
        "incolink_compliance": 0.15,
        "right_of_entry": 0.10,
        "delegate_accommodation": 0.05,
        "access_to_information": 0.05,
        "access_to_inductions": 0.05,
        "hsr_respect": 0.10,
        "general_safety_standards": 0.10,
        "safety_incidents": 0.10,
        "subcontractor_use": 0.15,
    },
)

EXPERTISE_DEFAULT = WeightProfile(
    name="builtin_expertise",
    track=Track.EXPERTISE,
    is_default=True,
    weights={
        "cbus_overall": 0.20,
        "incolink_overall": 0.20,
        "union_relations_overall": 0.25,
        "safety_culture_overall": 0.20,
        "historical_relationship": 0.10,
        "eba_status": 0.05,
    },
)

BUILTIN_PROFILES = {
    Track.PROJECT: PROJECT_DEFAULT,
    Track.EXPERTISE: EXPERTISE_DEFAULT,
}


def resolve_profile(
    candidates: list[WeightProfile], track: Track, role: str | None
) -> WeightProfile:
    """
    Pick the profile for (track, role).
    Order: default profile for the role, then the 'all' default, then built-in.
    Highest version wins when several match.
    """
    for scope in (role, ALL_ROLES):
        if scope is None:
            continue
        matching = [
            p for p in candidates
            if p.track == track and p.role == scope and p.is_default
        ]
        if matching:
            return max(matching, key=lambda p: p.version)
    return BUILTIN_PROFILES[track]
