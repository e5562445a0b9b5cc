"""Confidence estimation per track and overall.

Two rules are composed for the expertise track and the lower tier wins:
recency (assessment count and age of the latest one) and reliability
(mean per-assessment confidence weight, which folds in assessor accuracy).
The project track only uses the recency rule.
"""

from ers.engine.policy import RatingPolicy
from ers.schemas.enums import AgreementStatus, ConfidenceLevel, Track
from ers.schemas.rating import AssessmentInput, GatingFactor, TrackScore


def lower_of(*levels: ConfidenceLevel) -> ConfidenceLevel:
    return min(levels, key=lambda level: level.rank)


def assessment_weight(assessment: AssessmentInput, policy: RatingPolicy) -> float:
    """Weight of one assessment when averaging several on the same track."""
    if assessment.confidence_level is None:
        base = policy.unlabelled_confidence_weight
    else:
        base = policy.confidence_base_weights.get(
            assessment.confidence_level, policy.unlabelled_confidence_weight
        )
    if assessment.track == Track.EXPERTISE:
        if assessment.assessor_accuracy is None:
            base *= policy.unknown_accuracy_fraction
        else:
            base *= max(0.0, min(100.0, assessment.assessor_accuracy)) / 100
    return max(base, policy.min_assessment_weight)


def recency_confidence(
    count: int, age_days: int | None, policy: RatingPolicy
) -> ConfidenceLevel:
    if count == 0 or age_days is None:
        return ConfidenceLevel.VERY_LOW
    for rule in policy.recency_rules:
        if count >= rule.min_count and age_days <= rule.max_age_days:
            return rule.level
    return ConfidenceLevel.VERY_LOW


def reliability_confidence(mean_weight: float, policy: RatingPolicy) -> ConfidenceLevel:
    return policy.tier_for(mean_weight)


def track_confidence(
    track: Track,
    count: int,
    age_days: int | None,
    reliability: float | None,
    policy: RatingPolicy,
) -> ConfidenceLevel:
    level = recency_confidence(count, age_days, policy)
    if track == Track.EXPERTISE and reliability is not None:
        level = lower_of(level, reliability_confidence(reliability, policy))
    return level


def gating_confidence(gating: GatingFactor) -> ConfidenceLevel | None:
    if gating.status == AgreementStatus.UNKNOWN:
        return None
    if gating.has_active_agreement:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.MEDIUM


def overall_confidence(
    project: TrackScore,
    expertise: TrackScore,
    gating: GatingFactor,
    policy: RatingPolicy,
) -> ConfidenceLevel:
    """Weighted blend of per-source confidence proxies, bucketed into a tier."""
    if project.score is None or expertise.score is None:
        return ConfidenceLevel.VERY_LOW

    weights = policy.overall_confidence_weights
    parts = [
        (project.confidence, weights["project"]),
        (expertise.confidence, weights["expertise"]),
    ]
    gating_level = gating_confidence(gating)
    if gating_level is not None:
        parts.append((gating_level, weights["gating"]))

    total = sum(w for _, w in parts)
    if total <= 0:
        return ConfidenceLevel.VERY_LOW
    value = sum(policy.confidence_proxies[level] * w for level, w in parts) / total
    return policy.tier_for(value)
