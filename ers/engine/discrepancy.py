"""Discrepancy detector - compares the project and expertise tracks."""

from ers.engine.policy import RatingPolicy
from ers.schemas.enums import DiscrepancySeverity, Rating
from ers.schemas.rating import DiscrepancyResult, TrackScore


def numeric_severity(difference: float, policy: RatingPolicy) -> DiscrepancySeverity:
    """Severity from the absolute score difference."""
    thresholds = policy.discrepancy_thresholds
    if thresholds.reached(difference, thresholds.major):
        return DiscrepancySeverity.MAJOR
    if thresholds.reached(difference, thresholds.moderate):
        return DiscrepancySeverity.MODERATE
    if thresholds.reached(difference, thresholds.minor):
        return DiscrepancySeverity.MINOR
    return DiscrepancySeverity.NONE


def categorical_severity(
    project: Rating, expertise: Rating, policy: RatingPolicy
) -> DiscrepancySeverity:
    """Severity from how many label tiers apart the two tracks are."""
    scale = policy.scale
    project_tier = scale.tier(project)
    expertise_tier = scale.tier(expertise)
    if project_tier is None or expertise_tier is None:
        return DiscrepancySeverity.NONE
    gap = abs(project_tier - expertise_tier)
    if gap <= 1:
        return DiscrepancySeverity.NONE
    if gap == len(scale.labels) - 1:
        return DiscrepancySeverity.CRITICAL
    return DiscrepancySeverity.MAJOR


def detect_discrepancy(
    project: TrackScore, expertise: TrackScore, policy: RatingPolicy
) -> DiscrepancyResult:
    """Classify the disagreement between tracks and decide whether review is needed."""
    if (
        project.score is None
        or expertise.score is None
        or project.rating == Rating.UNKNOWN
        or expertise.rating == Rating.UNKNOWN
    ):
        return DiscrepancyResult(
            score_difference=None,
            rating_match=False,
            severity=DiscrepancySeverity.NONE,
            detected=False,
            requires_review=policy.missing_track_requires_review,
        )

    difference = round(abs(project.score - expertise.score), 4)
    severity = max(
        numeric_severity(difference, policy),
        categorical_severity(project.rating, expertise.rating, policy),
        key=lambda s: s.level,
    )
    rating_match = project.rating == expertise.rating
    return DiscrepancyResult(
        score_difference=difference,
        rating_match=rating_match,
        severity=severity,
        detected=severity != DiscrepancySeverity.NONE or not rating_match,
        requires_review=severity.level >= DiscrepancySeverity.MODERATE.level,
    )
