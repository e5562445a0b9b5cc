"""Final rating aggregator.

Combines the two track scores and the gating factor into one final score with
a closed set of calculation strategies. All strategies work on the canonical
0..1 scale; the result is converted back to the policy's scale and clamped.
"""

import logging
from collections.abc import Callable
from datetime import date, timedelta

from ers.engine.confidence import overall_confidence
from ers.engine.discrepancy import detect_discrepancy
from ers.engine.gating import is_no_agreement, resolve_gating
from ers.engine.policy import RatingPolicy
from ers.engine.track_scorer import SCORE_PRECISION, score_track
from ers.engine.weights import BUILTIN_PROFILES, WeightProfile
from ers.errors import RatingValidationError, UnknownMethodError
from ers.schemas.enums import (
    AgreementStatus,
    CalculationMethod,
    ConfidenceLevel,
    GatingMode,
    Rating,
    Track,
)
from ers.schemas.rating import (
    AssessmentInput,
    CalculationWeights,
    DiscrepancyResult,
    FinalRatingResult,
    GatingFactor,
    TrackScore,
)
from ers.utils.canonical import inputs_hash

logger = logging.getLogger(__name__)

METHOD_ALIASES = {
    "custom": CalculationMethod.HYBRID,
    "custom_function": CalculationMethod.HYBRID,
    "hybrid_method": CalculationMethod.HYBRID,
}

HUMAN_REVIEW = "human_review_required"
AUTOMATED_ADJUSTMENT = "automated_weighting_adjustment"
DISPUTE_RESOLUTION = "dispute_resolution"

Strategy = Callable[
    [float | None, float | None, float | None, CalculationWeights, RatingPolicy],
    float | None,
]


def _weighted_mean(pairs: list[tuple[float | None, float]]) -> float | None:
    present = [(v, w) for v, w in pairs if v is not None and w > 0]
    total = sum(w for _, w in present)
    if total <= 0:
        return None
    return sum(v * w for v, w in present) / total


def weighted_average(project, expertise, gating, weights, policy):
    """(p*Wp + e*We + g*Wg) / (Wp+We+Wg) over the sources that are present."""
    return _weighted_mean(
        [
            (project, weights.project),
            (expertise, weights.expertise),
            (gating, weights.gating),
        ]
    )


def hybrid(project, expertise, gating, weights, policy):
    """Track base blended with gating by the critical weight."""
    base = _weighted_mean([(project, weights.project), (expertise, weights.expertise)])
    if base is None:
        return gating
    if gating is None:
        return base
    critical = policy.hybrid_critical_weight
    return base * (1 - critical) + gating * critical


def weighted_sum(project, expertise, gating, weights, policy):
    """Un-normalised sum of weighted sources."""
    present = [
        (v, w)
        for v, w in (
            (project, weights.project),
            (expertise, weights.expertise),
            (gating, weights.gating),
        )
        if v is not None
    ]
    if not present:
        return None
    return sum(v * w for v, w in present)


def minimum_score(project, expertise, gating, weights, policy):
    """Lowest of gating and project track, expertise only when neither exists."""
    values = [v for v in (gating, project) if v is not None]
    if values:
        return min(values)
    return expertise


STRATEGIES: dict[CalculationMethod, Strategy] = {
    CalculationMethod.WEIGHTED_AVERAGE: weighted_average,
    CalculationMethod.HYBRID: hybrid,
    CalculationMethod.WEIGHTED_SUM: weighted_sum,
    CalculationMethod.MINIMUM_SCORE: minimum_score,
}


def resolve_method(
    method: CalculationMethod | str | None, policy: RatingPolicy
) -> CalculationMethod:
    """
    Resolve a method name to a strategy.
    Unknown names raise in strict mode, otherwise fall back to weighted_average.
    """
    if method is None:
        return CalculationMethod.WEIGHTED_AVERAGE
    if isinstance(method, CalculationMethod):
        resolved = method
    else:
        key = method.strip().lower()
        resolved = METHOD_ALIASES.get(key)
        if resolved is None:
            try:
                resolved = CalculationMethod(key)
            except ValueError:
                if policy.strict_methods:
                    raise UnknownMethodError(method) from None
                logger.warning(
                    "Unknown calculation method '%s', falling back to weighted_average",
                    method,
                )
                return CalculationMethod.WEIGHTED_AVERAGE
    if resolved not in STRATEGIES:
        raise RatingValidationError(
            f"Method '{resolved.value}' is only applied through dispute resolution"
        )
    return resolved


def combine(
    project: TrackScore,
    expertise: TrackScore,
    gating: GatingFactor,
    weights: CalculationWeights,
    method: CalculationMethod,
    gating_mode: GatingMode,
    policy: RatingPolicy,
) -> float | None:
    """Final native score, or None when no source has a score."""
    scale = policy.scale
    p = scale.to_canonical(project.score) if project.score is not None else None
    e = scale.to_canonical(expertise.score) if expertise.score is not None else None
    g = scale.to_canonical(gating.score) if gating.score is not None else None

    strategy = STRATEGIES[method]
    if gating_mode == GatingMode.BLEND:
        value = strategy(p, e, g, weights, policy)
    else:
        value = strategy(p, e, None, weights, policy)
        if gating_mode == GatingMode.OVERRIDE and is_no_agreement(gating):
            value = 0.0
        elif gating_mode == GatingMode.FLOOR and g is not None:
            value = g if value is None else max(value, g)

    if value is None:
        return None
    return round(scale.clamp(scale.from_canonical(value)), SCORE_PRECISION)


def data_completeness(
    project: TrackScore, expertise: TrackScore, gating: GatingFactor, policy: RatingPolicy
) -> float:
    """Sum of fixed points for each source that has data (0..100)."""
    points = policy.completeness_points
    total = 0.0
    if project.score is not None:
        total += points["project"]
    if expertise.score is not None:
        total += points["expertise"]
    if gating.status != AgreementStatus.UNKNOWN:
        total += points["gating"]
    return total


def review_dates(
    calculation_date: date, confidence: ConfidenceLevel, policy: RatingPolicy
) -> tuple[date, date]:
    """(next review date, expiry date)."""
    interval = policy.review_interval_days[confidence]
    return (
        calculation_date + timedelta(days=interval),
        calculation_date + timedelta(days=policy.expiry_days),
    )


def _review(
    discrepancy: DiscrepancyResult, project: TrackScore, expertise: TrackScore
) -> tuple[bool, str | None, str | None]:
    """(review_required, review_reason, reconciliation_method)."""
    if discrepancy.requires_review:
        if project.score is None or expertise.score is None:
            reason = "Missing track data requires review"
        else:
            reason = (
                f"{discrepancy.severity.value.capitalize()} discrepancy between "
                f"project ({project.rating.value}) and expertise ({expertise.rating.value})"
            )
        return True, reason, HUMAN_REVIEW
    if discrepancy.detected:
        return False, None, AUTOMATED_ADJUSTMENT
    return False, None, None


def calculate_rating(
    employer_id: str,
    calculation_date: date,
    assessments: list[AssessmentInput],
    agreement_status: AgreementStatus | str | bool | None,
    policy: RatingPolicy,
    *,
    gating_mode: GatingMode,
    profiles: dict[Track, WeightProfile] | None = None,
    weights: CalculationWeights | None = None,
    method: CalculationMethod | str | None = None,
) -> FinalRatingResult:
    """Pure calculation of one employer's final rating as of a date."""
    profiles = profiles or {}
    weights = weights or CalculationWeights()
    resolved = resolve_method(method, policy)

    project = score_track(
        Track.PROJECT,
        assessments,
        profiles.get(Track.PROJECT, BUILTIN_PROFILES[Track.PROJECT]),
        policy,
        calculation_date,
    )
    expertise = score_track(
        Track.EXPERTISE,
        assessments,
        profiles.get(Track.EXPERTISE, BUILTIN_PROFILES[Track.EXPERTISE]),
        policy,
        calculation_date,
    )
    gating = resolve_gating(agreement_status, policy)
    discrepancy = detect_discrepancy(project, expertise, policy)

    final_score = combine(project, expertise, gating, weights, resolved, gating_mode, policy)
    confidence = overall_confidence(project, expertise, gating, policy)
    review_required, review_reason, reconciliation = _review(discrepancy, project, expertise)
    next_review, expiry = review_dates(calculation_date, confidence, policy)

    return FinalRatingResult(
        employer_id=employer_id,
        calculation_date=calculation_date,
        final_score=final_score,
        final_rating=policy.scale.label_for(final_score),
        project=project,
        expertise=expertise,
        gating=gating,
        weights=weights,
        method=resolved,
        gating_mode=gating_mode,
        discrepancy=discrepancy,
        overall_confidence=confidence,
        data_completeness=data_completeness(project, expertise, gating, policy),
        review_required=review_required,
        review_reason=review_reason,
        reconciliation_method=reconciliation,
        next_review_date=next_review,
        expiry_date=expiry,
        scale=policy.scale.name,
        policy_version=policy.version,
    )


def apply_dispute_override(
    base: FinalRatingResult,
    calculation_date: date,
    policy: RatingPolicy,
    new_rating: Rating | None = None,
    new_score: float | None = None,
) -> FinalRatingResult:
    """New result carrying a dispute's resolved label and/or score."""
    scale = policy.scale
    if new_score is not None:
        score = round(scale.validate_score(new_score), SCORE_PRECISION)
        rating = new_rating or scale.label_for(score)
    elif new_rating is not None:
        score = scale.representative_score(new_rating)
        rating = new_rating
    else:
        raise RatingValidationError("A dispute override needs a new rating or score")

    next_review, expiry = review_dates(calculation_date, base.overall_confidence, policy)
    return base.model_copy(
        update={
            "calculation_date": calculation_date,
            "final_score": score,
            "final_rating": rating,
            "method": CalculationMethod.DISPUTE_OVERRIDE,
            "review_required": False,
            "review_reason": None,
            "reconciliation_method": DISPUTE_RESOLUTION,
            "next_review_date": next_review,
            "expiry_date": expiry,
            "scale": scale.name,
            "policy_version": policy.version,
        }
    )


def calculation_fingerprint(
    employer_id: str,
    calculation_date: date,
    assessments: list[AssessmentInput],
    agreement_status: AgreementStatus | str | bool | None,
    policy: RatingPolicy,
    *,
    gating_mode: GatingMode,
    profiles: dict[Track, WeightProfile] | None = None,
    weights: CalculationWeights | None = None,
    method: CalculationMethod | str | None = None,
) -> str:
    """Hash of everything that determines a calculation's output."""
    profiles = profiles or {}
    ordered = sorted(assessments, key=lambda a: (a.track.value, a.assessment_id))
    return inputs_hash(
        {
            "employer_id": employer_id,
            "calculation_date": calculation_date.isoformat(),
            "assessments": [a.model_dump(mode="json") for a in ordered],
            "agreement_status": resolve_gating(agreement_status, policy).status.value,
            "profiles": {
                track.value: profiles.get(track, BUILTIN_PROFILES[track]).model_dump(mode="json")
                for track in Track
            },
            "weights": (weights or CalculationWeights()).model_dump(mode="json"),
            "method": resolve_method(method, policy).value,
            "gating_mode": gating_mode.value,
            "scale": policy.scale.name,
            "policy_version": policy.version,
        }
    )
