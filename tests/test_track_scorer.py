"""Unit tests for the track scorer."""

import pytest

from ers.engine.track_scorer import score_assessment, score_track
from ers.engine.weights import WeightProfile
from ers.errors import RatingValidationError
from ers.schemas.enums import ConfidenceLevel, Rating, Track

PROFILE = WeightProfile(name="t", track=Track.PROJECT, weights={"a": 0.75, "b": 0.25})


def test_component_weighted_average(make_assessment, policy, as_of):
    """a=4 (w .75) and b=2 (w .25) -> 3.5 -> green."""
    a = make_assessment(Track.PROJECT, 5, {"a": 4, "b": 2})
    result = score_track(Track.PROJECT, [a], PROFILE, policy, as_of)
    assert result.score == pytest.approx(3.5)
    assert result.rating == Rating.GREEN


def test_missing_component_is_omitted(make_assessment, policy, as_of):
    """An absent component adds nothing to numerator or denominator."""
    a = make_assessment(Track.PROJECT, 5, {"a": 2})
    result = score_track(Track.PROJECT, [a], PROFILE, policy, as_of)
    assert result.score == pytest.approx(2.0)
    assert result.rating == Rating.AMBER


def test_unknown_component_ignored(make_assessment, policy):
    """Components outside the profile are ignored."""
    a = make_assessment(Track.PROJECT, 5, {"a": 3, "mystery": 1})
    assert score_assessment(a, PROFILE, policy) == pytest.approx(2 / 3)


def test_only_unknown_components(make_assessment, policy):
    """An assessment without weighted components contributes nothing."""
    a = make_assessment(Track.PROJECT, 5, {"mystery": 1})
    assert score_assessment(a, PROFILE, policy) is None


def test_out_of_range_component_rejected(make_assessment, policy, as_of):
    """Component scores must lie within the scale."""
    a = make_assessment(Track.PROJECT, 5, {"a": 9})
    with pytest.raises(RatingValidationError):
        score_track(Track.PROJECT, [a], PROFILE, policy, as_of)


def test_no_assessments_is_unknown(policy, as_of):
    """Zero components -> no score, unknown rating, lowest confidence."""
    result = score_track(Track.PROJECT, [], PROFILE, policy, as_of)
    assert result.score is None
    assert result.rating == Rating.UNKNOWN
    assert result.confidence == ConfidenceLevel.VERY_LOW
    assert result.assessment_count == 0


def test_other_track_and_future_assessments_ignored(make_assessment, policy, as_of):
    """Only the requested track up to the calculation date counts."""
    other = make_assessment(Track.EXPERTISE, 5, {"a": 1})
    future = make_assessment(Track.PROJECT, -3, {"a": 1})
    result = score_track(Track.PROJECT, [other, future], PROFILE, policy, as_of)
    assert result.score is None


def test_assessments_weighted_by_confidence(make_assessment, policy, as_of):
    """high (1.0) at 4 and low (.6) at 1 -> canonical .625 -> 2.875."""
    strong = make_assessment(Track.PROJECT, 10, {"a": 4}, confidence="high")
    weak = make_assessment(Track.PROJECT, 40, {"a": 1}, confidence="low")
    result = score_track(Track.PROJECT, [strong, weak], PROFILE, policy, as_of)
    assert result.score == pytest.approx(2.875)
    assert result.rating == Rating.YELLOW
    assert result.assessment_count == 2
    assert result.data_age_days == 10
    assert result.confidence == ConfidenceLevel.HIGH


def test_score_stays_within_bounds(make_assessment, legacy_policy, as_of):
    """Output never leaves the scale bounds."""
    a = make_assessment(Track.PROJECT, 1, {"a": 100, "b": 100})
    b = make_assessment(Track.PROJECT, 2, {"a": -100})
    for assessments in ([a], [b], [a, b]):
        result = score_track(Track.PROJECT, assessments, PROFILE, legacy_policy, as_of)
        assert -100 <= result.score <= 100
