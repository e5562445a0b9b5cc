"""Unit tests for confidence estimation."""

import pytest

from ers.engine.confidence import (
    assessment_weight,
    lower_of,
    overall_confidence,
    recency_confidence,
    track_confidence,
)
from ers.engine.gating import resolve_gating
from ers.schemas.enums import ConfidenceLevel, Rating, Track
from ers.schemas.rating import TrackScore


def test_project_weight_uses_label_only(make_assessment, policy):
    """Project assessments ignore assessor accuracy."""
    a = make_assessment(Track.PROJECT, 1, {"cbus_compliance": 3}, confidence="high", accuracy=50)
    assert assessment_weight(a, policy) == 1.0


def test_expertise_weight_uses_accuracy(make_assessment, policy):
    """Expertise weight is label base times accuracy fraction."""
    a = make_assessment(Track.EXPERTISE, 1, {"cbus_overall": 3}, confidence="high", accuracy=80)
    assert assessment_weight(a, policy) == pytest.approx(0.8)


def test_expertise_weight_unknown_accuracy(make_assessment, policy):
    """Unknown accuracy counts as 0.7."""
    a = make_assessment(Track.EXPERTISE, 1, {"cbus_overall": 3}, confidence="medium")
    assert assessment_weight(a, policy) == pytest.approx(0.56)


def test_unlabelled_and_floor(make_assessment, policy):
    """Missing label uses 0.5 and weights never drop below 0.1."""
    unlabelled = make_assessment(Track.PROJECT, 1, {"cbus_compliance": 3}, confidence=None)
    assert assessment_weight(unlabelled, policy) == 0.5
    weak = make_assessment(
        Track.EXPERTISE, 1, {"cbus_overall": 3}, confidence="very_low", accuracy=10
    )
    assert assessment_weight(weak, policy) == pytest.approx(0.1)


@pytest.mark.parametrize(
    "count,age,expected",
    [
        (2, 30, ConfidenceLevel.HIGH),
        (2, 60, ConfidenceLevel.HIGH),
        (1, 30, ConfidenceLevel.MEDIUM),
        (2, 61, ConfidenceLevel.MEDIUM),
        (3, 100, ConfidenceLevel.LOW),
        (1, 121, ConfidenceLevel.VERY_LOW),
        (0, None, ConfidenceLevel.VERY_LOW),
    ],
)
def test_recency_rule(count, age, expected, policy):
    """Recency tiers from count and age of the latest assessment."""
    assert recency_confidence(count, age, policy) == expected


def test_expertise_takes_lower_tier(policy):
    """Reliability can pull the expertise tier below the recency tier."""
    assert track_confidence(Track.EXPERTISE, 3, 10, 0.5, policy) == ConfidenceLevel.LOW
    assert track_confidence(Track.PROJECT, 3, 10, 0.5, policy) == ConfidenceLevel.HIGH


def test_lower_of():
    """Lowest tier wins."""
    assert lower_of(ConfidenceLevel.HIGH, ConfidenceLevel.LOW) == ConfidenceLevel.LOW


def _track(track, score, confidence):
    return TrackScore(track=track, score=score, rating=Rating.YELLOW, confidence=confidence)


def test_overall_confidence_blend(policy):
    """(.9*.6 + .3*.4 + .9*.15) / 1.15 = .69 -> medium."""
    result = overall_confidence(
        _track(Track.PROJECT, 3, ConfidenceLevel.HIGH),
        _track(Track.EXPERTISE, 1, ConfidenceLevel.VERY_LOW),
        resolve_gating("active", policy),
        policy,
    )
    assert result == ConfidenceLevel.MEDIUM


def test_overall_confidence_missing_track(policy):
    """A missing track forces very_low."""
    result = overall_confidence(
        _track(Track.PROJECT, 3, ConfidenceLevel.HIGH),
        TrackScore(track=Track.EXPERTISE),
        resolve_gating("active", policy),
        policy,
    )
    assert result == ConfidenceLevel.VERY_LOW


def test_overall_confidence_without_gating(policy):
    """Unknown gating is left out of the blend."""
    result = overall_confidence(
        _track(Track.PROJECT, 3, ConfidenceLevel.HIGH),
        _track(Track.EXPERTISE, 3, ConfidenceLevel.HIGH),
        resolve_gating(None, policy),
        policy,
    )
    assert result == ConfidenceLevel.HIGH
