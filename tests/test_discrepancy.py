"""Unit tests for the discrepancy detector."""

import pytest

from ers.engine.discrepancy import detect_discrepancy
from ers.engine.policy import RatingPolicy
from ers.schemas.enums import DiscrepancySeverity, Track
from ers.schemas.rating import TrackScore


def _pair(policy, project_score, expertise_score):
    def track(t, score):
        return TrackScore(track=t, score=score, rating=policy.scale.label_for(score))

    return track(Track.PROJECT, project_score), track(Track.EXPERTISE, expertise_score)


@pytest.mark.parametrize(
    "project,expertise,severity,review",
    [
        (3.0, 3.0, DiscrepancySeverity.NONE, False),
        (3.0, 2.0, DiscrepancySeverity.MINOR, False),
        (3.4, 1.9, DiscrepancySeverity.MODERATE, True),
        (3.0, 1.0, DiscrepancySeverity.MAJOR, True),
        (4.0, 1.0, DiscrepancySeverity.CRITICAL, True),
    ],
)
def test_four_point_boundaries(project, expertise, severity, review, policy):
    """Thresholds 1.0 / 1.5 / 2.0 are inclusive."""
    result = detect_discrepancy(*_pair(policy, project, expertise), policy)
    assert result.severity == severity
    assert result.requires_review is review


@pytest.mark.parametrize(
    "project,expertise,severity",
    [
        (86, 70, DiscrepancySeverity.MINOR),
        (76, 50, DiscrepancySeverity.MODERATE),
        (91, 50, DiscrepancySeverity.MAJOR),
        (95, 80, DiscrepancySeverity.NONE),
        (75, 50, DiscrepancySeverity.MINOR),
        (90, 50, DiscrepancySeverity.MODERATE),
    ],
)
def test_legacy_boundaries(project, expertise, severity, legacy_policy):
    """Legacy thresholds 15 / 25 / 40 must be exceeded, not just reached."""
    result = detect_discrepancy(*_pair(legacy_policy, project, expertise), legacy_policy)
    assert result.severity == severity


def test_legacy_tie_on_same_label_not_detected(legacy_policy):
    """A difference of exactly 15 between two greens is no discrepancy."""
    result = detect_discrepancy(*_pair(legacy_policy, 95, 80), legacy_policy)
    assert result.score_difference == 15
    assert result.severity == DiscrepancySeverity.NONE
    assert result.detected is False
    assert result.requires_review is False


def test_red_green_is_critical_regardless_of_gap(legacy_policy):
    """Best vs worst label is critical even when the numeric gap is moderate."""
    result = detect_discrepancy(*_pair(legacy_policy, 80, 49), legacy_policy)
    assert result.score_difference == 31
    assert result.severity == DiscrepancySeverity.CRITICAL
    assert result.requires_review is True


def test_two_tier_gap_is_at_least_major(policy):
    """Labels two tiers apart force major even for a small numeric gap."""
    # 2.5 -> yellow, 1.49 -> red; difference 1.01 is only minor numerically
    result = detect_discrepancy(*_pair(policy, 2.5, 1.49), policy)
    assert result.severity == DiscrepancySeverity.MAJOR


def test_missing_track_short_circuits(policy):
    """Unknown on either side -> none, no review."""
    project = TrackScore(track=Track.PROJECT, score=3.0, rating=policy.scale.label_for(3.0))
    expertise = TrackScore(track=Track.EXPERTISE)
    result = detect_discrepancy(project, expertise, policy)
    assert result.severity == DiscrepancySeverity.NONE
    assert result.detected is False
    assert result.requires_review is False
    assert result.score_difference is None


def test_missing_track_review_policy():
    """Policy can make missing data itself require review."""
    policy = RatingPolicy.for_scale("four_point", missing_track_requires_review=True)
    project = TrackScore(track=Track.PROJECT, score=3.0, rating=policy.scale.label_for(3.0))
    result = detect_discrepancy(project, TrackScore(track=Track.EXPERTISE), policy)
    assert result.requires_review is True


def test_label_mismatch_is_detected(policy):
    """Different labels are flagged even below the minor threshold."""
    result = detect_discrepancy(*_pair(policy, 2.6, 2.4), policy)
    assert result.severity == DiscrepancySeverity.NONE
    assert result.rating_match is False
    assert result.detected is True
