"""Rating history deltas, anomaly flags and the quality metrics rollup."""

from collections import Counter
from datetime import date

from pydantic import BaseModel, Field

from ers.engine.policy import RatingPolicy
from ers.schemas.enums import (
    ChangeType,
    ConfidenceLevel,
    DisputeStatus,
    Rating,
    RatingStatus,
)

DIRECTIONAL = (ChangeType.IMPROVEMENT, ChangeType.DECLINE)


class HistoryEntry(BaseModel):
    """One append-only history record for an employer."""

    rating_date: date
    previous_rating: Rating | None = None
    new_rating: Rating
    previous_score: float | None = None
    new_score: float | None = None
    change_type: ChangeType
    score_change: float | None = None
    change_magnitude: int | None = None
    significant_change: bool = False
    days_since_previous: int | None = None
    trend_consistent: bool = False
    anomaly_detected: bool = False
    anomaly_reason: str | None = None


def change_magnitude(canonical_delta: float, policy: RatingPolicy) -> int:
    delta = abs(canonical_delta)
    for minimum, magnitude in policy.magnitude_thresholds:
        if delta >= minimum:
            return magnitude
    return 1


def _direction(
    previous: HistoryEntry, new_rating: Rating, new_score: float | None, policy: RatingPolicy
) -> tuple[ChangeType, float | None]:
    """(change type, canonical delta)."""
    scale = policy.scale
    if previous.new_score is not None and new_score is not None:
        delta = scale.to_canonical(new_score) - scale.to_canonical(previous.new_score)
        if abs(delta) < 1e-9:
            return ChangeType.MAINTAINED, 0.0
        return (ChangeType.IMPROVEMENT if delta > 0 else ChangeType.DECLINE), delta
    before = scale.tier(previous.new_rating)
    after = scale.tier(new_rating)
    if before is None or after is None or before == after:
        return ChangeType.MAINTAINED, None
    return (ChangeType.IMPROVEMENT if after > before else ChangeType.DECLINE), None


def build_history_entry(
    previous: HistoryEntry | None,
    new_rating: Rating,
    new_score: float | None,
    rating_date: date,
    policy: RatingPolicy,
    dispute_driven: bool = False,
) -> HistoryEntry:
    """Derive the next history entry from the previous one."""
    if previous is None:
        return HistoryEntry(
            rating_date=rating_date,
            new_rating=new_rating,
            new_score=new_score,
            change_type=ChangeType.DISPUTE_DRIVEN if dispute_driven else ChangeType.FIRST_RATING,
        )

    direction, delta = _direction(previous, new_rating, new_score, policy)
    magnitude = change_magnitude(delta, policy) if delta is not None else None
    days = (rating_date - previous.rating_date).days

    score_change = None
    if previous.new_score is not None and new_score is not None:
        score_change = round(new_score - previous.new_score, 4)

    reasons = []
    if magnitude is not None and magnitude >= 4 and days <= policy.anomaly_window_days:
        reasons.append(f"magnitude {magnitude} change within {days} days")
    before = policy.scale.tier(previous.new_rating)
    after = policy.scale.tier(new_rating)
    if before is not None and after is not None and abs(after - before) > 1:
        reasons.append(
            f"rating jumped {abs(after - before)} tiers "
            f"({previous.new_rating.value} -> {new_rating.value})"
        )

    return HistoryEntry(
        rating_date=rating_date,
        previous_rating=previous.new_rating,
        new_rating=new_rating,
        previous_score=previous.new_score,
        new_score=new_score,
        change_type=ChangeType.DISPUTE_DRIVEN if dispute_driven else direction,
        score_change=score_change,
        change_magnitude=magnitude,
        significant_change=magnitude is not None and magnitude >= 3,
        days_since_previous=days,
        trend_consistent=direction in DIRECTIONAL and previous.change_type == direction,
        anomaly_detected=bool(reasons),
        anomaly_reason="; ".join(reasons) or None,
    )


# Quality metrics


class RatingSnapshot(BaseModel):
    employer_id: str
    final_rating: Rating
    overall_confidence: ConfidenceLevel
    data_completeness: float
    discrepancy_detected: bool
    discrepancy_level: int
    review_required: bool
    rating_status: RatingStatus


class DisputeSnapshot(BaseModel):
    status: DisputeStatus
    filed_on: date
    closed_on: date | None = None
    rating_changed: bool = False


class QualityMetrics(BaseModel):
    metric_date: date
    total_employers_rated: int = 0
    ratings_by_category: dict[str, int] = Field(default_factory=dict)
    average_confidence_score: float | None = None
    data_completeness_average: float | None = None
    discrepancy_rate: float | None = None
    average_discrepancy_level: float | None = None
    pending_discrepancies: int = 0
    resolved_discrepancies: int = 0
    disputes_filed: int = 0
    disputes_resolved: int = 0
    resolution_success_rate: float | None = None
    average_resolution_days: float | None = None


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 4)


def compute_quality_metrics(
    metric_date: date,
    ratings: list[RatingSnapshot],
    disputes: list[DisputeSnapshot],
    policy: RatingPolicy,
) -> QualityMetrics:
    """
    Roll up current ratings and disputes into system-wide quality metrics.
    `ratings` should hold the current (non-superseded) rating per employer.
    """
    current = [
        r for r in ratings
        if r.rating_status not in (RatingStatus.SUPERSEDED, RatingStatus.ARCHIVED)
    ]
    detected = [r for r in current if r.discrepancy_detected]
    closed = [
        d for d in disputes
        if d.status in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED, DisputeStatus.ESCALATED)
    ]
    resolved = [d for d in closed if d.status == DisputeStatus.RESOLVED]
    durations = [
        float((d.closed_on - d.filed_on).days) for d in closed if d.closed_on is not None
    ]

    return QualityMetrics(
        metric_date=metric_date,
        total_employers_rated=len({r.employer_id for r in current}),
        ratings_by_category=dict(Counter(r.final_rating.value for r in current)),
        average_confidence_score=_mean(
            [policy.confidence_proxies[r.overall_confidence] for r in current]
        ),
        data_completeness_average=_mean([r.data_completeness for r in current]),
        discrepancy_rate=round(len(detected) / len(current), 4) if current else None,
        average_discrepancy_level=_mean([float(r.discrepancy_level) for r in detected]),
        pending_discrepancies=sum(1 for r in detected if r.review_required),
        resolved_discrepancies=sum(1 for r in detected if not r.review_required),
        disputes_filed=len(disputes),
        disputes_resolved=len(resolved),
        resolution_success_rate=round(len(resolved) / len(closed), 4) if closed else None,
        average_resolution_days=_mean(durations),
    )
