"""Track scorer - turns dated assessments into one score and label per track."""

import logging
from datetime import date

from ers.engine.confidence import assessment_weight, track_confidence
from ers.engine.policy import RatingPolicy
from ers.engine.weights import WeightProfile
from ers.errors import MissingDataError
from ers.schemas.enums import ConfidenceLevel, Rating, Track
from ers.schemas.rating import AssessmentInput, TrackScore

logger = logging.getLogger(__name__)

SCORE_PRECISION = 4


def score_assessment(
    assessment: AssessmentInput, profile: WeightProfile, policy: RatingPolicy
) -> float | None:
    """
    Weighted average of one assessment's components on the canonical scale.
    Components absent from the assessment add nothing to the numerator or the
    denominator. Returns None when no weighted component is present.
    """
    scale = policy.scale
    numerator = 0.0
    denominator = 0.0
    for component in assessment.components:
        weight = profile.weights.get(component.component_id)
        if weight is None:
            logger.warning(
                "Ignoring component '%s' on assessment %s: not in profile %s",
                component.component_id,
                assessment.assessment_id,
                profile.name,
            )
            continue
        scale.validate_score(component.score)
        numerator += scale.to_canonical(component.score) * weight
        denominator += weight
    if denominator <= 0:
        return None
    return numerator / denominator


def _combine(
    assessments: list[AssessmentInput], profile: WeightProfile, policy: RatingPolicy
) -> tuple[float, list[AssessmentInput], float]:
    """Confidence-weighted mean across assessments: (canonical, used, mean weight)."""
    used = []
    weighted = 0.0
    total_weight = 0.0
    for assessment in assessments:
        value = score_assessment(assessment, profile, policy)
        if value is None:
            continue
        weight = assessment_weight(assessment, policy)
        weighted += value * weight
        total_weight += weight
        used.append(assessment)
    if not used:
        raise MissingDataError(f"No scored assessments for track {profile.track.value}")
    return weighted / total_weight, used, total_weight / len(used)


def empty_track(track: Track) -> TrackScore:
    return TrackScore(
        track=track,
        score=None,
        rating=Rating.UNKNOWN,
        confidence=ConfidenceLevel.VERY_LOW,
        assessment_count=0,
    )


def score_track(
    track: Track,
    assessments: list[AssessmentInput],
    profile: WeightProfile,
    policy: RatingPolicy,
    as_of: date,
) -> TrackScore:
    """Score one track as of a date. Missing data degrades to an unknown rating."""
    relevant = [
        a for a in assessments
        if a.track == track and a.assessment_date <= as_of
    ]
    try:
        canonical, used, reliability = _combine(relevant, profile, policy)
    except MissingDataError:
        logger.debug("Track %s has no usable assessments", track.value)
        return empty_track(track)

    scale = policy.scale
    score = round(scale.clamp(scale.from_canonical(canonical)), SCORE_PRECISION)
    latest = max(a.assessment_date for a in used)
    age_days = (as_of - latest).days
    confidence = track_confidence(track, len(used), age_days, reliability, policy)
    logger.debug(
        "Track %s: score=%s from %d assessments, age=%d days, confidence=%s",
        track.value,
        score,
        len(used),
        age_days,
        confidence.value,
    )
    return TrackScore(
        track=track,
        score=score,
        rating=scale.label_for(score),
        confidence=confidence,
        assessment_count=len(used),
        latest_assessment_date=latest,
        data_age_days=age_days,
        reliability_weight=round(reliability, SCORE_PRECISION),
    )
