"""Unit tests for the final rating aggregator."""

from datetime import timedelta

import pytest

from ers.engine.aggregator import (
    AUTOMATED_ADJUSTMENT,
    DISPUTE_RESOLUTION,
    HUMAN_REVIEW,
    apply_dispute_override,
    calculate_rating,
    calculation_fingerprint,
    resolve_method,
)
from ers.engine.policy import RatingPolicy
from ers.errors import RatingValidationError, UnknownMethodError
from ers.schemas.enums import (
    CalculationMethod,
    ConfidenceLevel,
    DiscrepancySeverity,
    GatingMode,
    Rating,
    Track,
)


@pytest.fixture
def entity_x(make_assessment):
    """Project 3 (two recent), expertise 1 (one stale)."""
    return [
        make_assessment(Track.PROJECT, 10, {"cbus_compliance": 3, "right_of_entry": 3}),
        make_assessment(Track.PROJECT, 25, {"hsr_respect": 3}),
        make_assessment(Track.EXPERTISE, 200, {"union_relations_overall": 1}),
    ]


def _rate(assessments, policy, as_of, status="active", mode=GatingMode.BLEND, **kwargs):
    return calculate_rating("emp-1", as_of, assessments, status, policy, gating_mode=mode, **kwargs)


def test_entity_x(entity_x, policy, as_of):
    """(.6667*.6 + 0*.4 + .6667*.15) / 1.15 on the canonical scale -> 2.3043 amber."""
    result = _rate(entity_x, policy, as_of)

    assert result.project.score == pytest.approx(3.0)
    assert result.project.rating == Rating.YELLOW
    assert result.project.confidence == ConfidenceLevel.HIGH
    assert result.expertise.score == pytest.approx(1.0)
    assert result.expertise.rating == Rating.RED
    assert result.expertise.confidence == ConfidenceLevel.VERY_LOW
    assert result.gating.score == 3.0

    assert result.final_score == pytest.approx(2.3043, abs=1e-4)
    assert result.final_rating == Rating.AMBER
    assert result.method == CalculationMethod.WEIGHTED_AVERAGE

    assert result.discrepancy.score_difference == pytest.approx(2.0)
    assert result.discrepancy.severity == DiscrepancySeverity.MAJOR
    assert result.review_required is True
    assert result.reconciliation_method == HUMAN_REVIEW
    assert "project (yellow)" in result.review_reason

    assert result.overall_confidence == ConfidenceLevel.MEDIUM
    assert result.data_completeness == 100
    assert result.next_review_date == as_of + timedelta(days=90)
    assert result.expiry_date == as_of + timedelta(days=182)
    assert result.scale == "four_point"


def test_entity_y_missing_expertise(make_assessment, policy, as_of):
    """No expertise data degrades instead of failing."""
    assessments = [
        make_assessment(Track.PROJECT, 10, {"cbus_compliance": 3}),
        make_assessment(Track.PROJECT, 20, {"cbus_compliance": 3}),
    ]
    result = _rate(assessments, policy, as_of)

    assert result.expertise.score is None
    assert result.expertise.rating == Rating.UNKNOWN
    assert result.final_score == pytest.approx(3.0)
    assert result.final_rating == Rating.YELLOW
    assert result.overall_confidence == ConfidenceLevel.VERY_LOW
    assert result.data_completeness == 60
    assert result.discrepancy.severity == DiscrepancySeverity.NONE
    assert result.review_required is False
    assert result.reconciliation_method is None
    assert result.next_review_date == as_of + timedelta(days=30)


def test_no_data_at_all(policy, as_of):
    """Nothing to rate -> no score, unknown rating."""
    result = _rate([], policy, as_of, status=None)
    assert result.final_score is None
    assert result.final_rating == Rating.UNKNOWN
    assert result.data_completeness == 0


def test_calculation_is_deterministic(entity_x, policy, as_of):
    """Same inputs and policy give the same result and fingerprint."""
    first = _rate(entity_x, policy, as_of)
    second = _rate(list(reversed(entity_x)), policy, as_of)
    assert first.model_dump() == second.model_dump()

    fingerprint = calculation_fingerprint(
        "emp-1", as_of, entity_x, "active", policy, gating_mode=GatingMode.BLEND
    )
    assert fingerprint == calculation_fingerprint(
        "emp-1", as_of, list(reversed(entity_x)), "active", policy, gating_mode=GatingMode.BLEND
    )
    assert fingerprint != calculation_fingerprint(
        "emp-1",
        as_of,
        entity_x,
        "active",
        policy,
        gating_mode=GatingMode.BLEND,
        method="hybrid",
    )


@pytest.mark.parametrize(
    "method,score,rating",
    [
        ("hybrid", 2.44, Rating.AMBER),
        ("custom", 2.44, Rating.AMBER),
        ("weighted_sum", 2.5, Rating.YELLOW),
        ("minimum_score", 3.0, Rating.YELLOW),
    ],
)
def test_methods_on_entity_x(method, score, rating, entity_x, policy, as_of):
    """Each strategy on the same inputs."""
    result = _rate(entity_x, policy, as_of, method=method)
    assert result.final_score == pytest.approx(score, abs=1e-4)
    assert result.final_rating == rating


def test_unknown_method_strict(entity_x, policy, as_of):
    """Strict policy rejects unknown methods."""
    with pytest.raises(UnknownMethodError):
        _rate(entity_x, policy, as_of, method="magic")


def test_unknown_method_falls_back(entity_x, as_of):
    """Non-strict policy falls back to weighted_average."""
    lenient = RatingPolicy.for_scale("four_point", strict_methods=False)
    result = _rate(entity_x, lenient, as_of, method="magic")
    assert result.method == CalculationMethod.WEIGHTED_AVERAGE
    assert result.final_score == pytest.approx(2.3043, abs=1e-4)


def test_dispute_override_not_selectable(policy):
    """The override method only comes from dispute resolution."""
    with pytest.raises(RatingValidationError):
        resolve_method("dispute_override", policy)
    assert resolve_method("Hybrid_Method", policy) == CalculationMethod.HYBRID
    assert resolve_method(None, policy) == CalculationMethod.WEIGHTED_AVERAGE


def test_override_mode_without_agreement(entity_x, policy, as_of):
    """No agreement forces the worst score."""
    result = _rate(entity_x, policy, as_of, status="none", mode=GatingMode.OVERRIDE)
    assert result.final_score == 1.0
    assert result.final_rating == Rating.RED


def test_override_mode_with_agreement(entity_x, policy, as_of):
    """An agreement in force leaves the tracks alone: (.6667*.6)/1.0 -> 2.2."""
    result = _rate(entity_x, policy, as_of, status="active", mode=GatingMode.OVERRIDE)
    assert result.final_score == pytest.approx(2.2, abs=1e-4)


def test_floor_mode(entity_x, policy, as_of):
    """Gating acts as a floor under the track blend."""
    result = _rate(entity_x, policy, as_of, status="active", mode=GatingMode.FLOOR)
    assert result.final_score == pytest.approx(3.0)


@pytest.mark.parametrize("method", ["weighted_average", "hybrid", "weighted_sum", "minimum_score"])
@pytest.mark.parametrize("mode", list(GatingMode))
@pytest.mark.parametrize("status", ["active", "expiring", "expired", "none", None])
def test_final_score_within_bounds(method, mode, status, entity_x, policy, as_of):
    """No combination leaves the 1..4 range."""
    result = _rate(entity_x, policy, as_of, status=status, mode=mode, method=method)
    assert 1.0 <= result.final_score <= 4.0


def test_legacy_scale(make_assessment, legacy_policy, as_of):
    """(.95*.6 + .9*.4 + .9*.15) / 1.15 -> 85.2174 on -100..100."""
    assessments = [
        make_assessment(Track.PROJECT, 5, {"cbus_compliance": 90}),
        make_assessment(Track.PROJECT, 15, {"cbus_compliance": 90}),
        make_assessment(Track.EXPERTISE, 20, {"cbus_overall": 80}),
    ]
    result = _rate(assessments, legacy_policy, as_of)
    assert result.final_score == pytest.approx(85.2174, abs=1e-4)
    assert result.final_rating == Rating.GREEN
    assert result.discrepancy.severity == DiscrepancySeverity.NONE
    assert result.discrepancy.detected is False
    assert result.scale == "legacy"


def test_inverted_scale_keeps_meaning(make_assessment, as_of):
    """On the inverted scale 1 is best, so a project score of 1 is green."""
    policy = RatingPolicy.for_scale("four_point_inverted")
    assessments = [
        make_assessment(Track.PROJECT, 5, {"cbus_compliance": 1}),
        make_assessment(Track.EXPERTISE, 5, {"cbus_overall": 1}),
    ]
    result = _rate(assessments, policy, as_of)
    assert result.project.rating == Rating.GREEN
    assert result.final_rating == Rating.GREEN


def test_small_label_mismatch_is_automated(make_assessment, policy, as_of):
    """Label mismatch below the review threshold uses automated weighting."""
    assessments = [
        make_assessment(Track.PROJECT, 5, {"cbus_compliance": 3}),
        make_assessment(Track.EXPERTISE, 5, {"cbus_overall": 2}),
    ]
    result = _rate(assessments, policy, as_of)
    assert result.discrepancy.severity == DiscrepancySeverity.MINOR
    assert result.review_required is False
    assert result.reconciliation_method == AUTOMATED_ADJUSTMENT


def test_dispute_override_by_label(entity_x, policy, as_of):
    """A resolved label stands in at its representative score."""
    base = _rate(entity_x, policy, as_of)
    later = as_of + timedelta(days=7)
    result = apply_dispute_override(base, later, policy, new_rating=Rating.GREEN)
    assert result.final_score == 4.0
    assert result.final_rating == Rating.GREEN
    assert result.method == CalculationMethod.DISPUTE_OVERRIDE
    assert result.reconciliation_method == DISPUTE_RESOLUTION
    assert result.review_required is False
    assert result.calculation_date == later
    assert result.project == base.project


def test_dispute_override_validation(entity_x, policy, as_of):
    """Override needs a valid score or label."""
    base = _rate(entity_x, policy, as_of)
    with pytest.raises(RatingValidationError):
        apply_dispute_override(base, as_of, policy, new_score=7)
    with pytest.raises(RatingValidationError):
        apply_dispute_override(base, as_of, policy)
    result = apply_dispute_override(base, as_of, policy, new_score=2.6)
    assert result.final_rating == Rating.YELLOW
