"""Shared fixtures for engine and service tests."""

from datetime import date, timedelta

import pytest

from ers.engine.policy import RatingPolicy
from ers.schemas.enums import Track
from ers.schemas.rating import AssessmentInput, ComponentScore

AS_OF = date(2026, 3, 1)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def policy() -> RatingPolicy:
    return RatingPolicy.for_scale("four_point")


@pytest.fixture
def legacy_policy() -> RatingPolicy:
    return RatingPolicy.for_scale("legacy")


@pytest.fixture
def make_assessment():
    """Factory: make_assessment(track, days_ago, {component: score}, ...)."""
    counter = {"n": 0}

    def _make(
        track: Track,
        days_ago: int,
        components: dict[str, float],
        confidence: str | None = "high",
        accuracy: float | None = None,
        as_of: date = AS_OF,
    ) -> AssessmentInput:
        counter["n"] += 1
        return AssessmentInput(
            assessment_id=f"{track.value}-{counter['n']}",
            track=track,
            assessment_date=as_of - timedelta(days=days_ago),
            confidence_level=confidence,
            assessor_accuracy=accuracy,
            components=[
                ComponentScore(component_id=cid, score=score) for cid, score in components.items()
            ],
        )

    return _make
