"""Rating service - gathers inputs, runs the engine and persists the outcome."""

import logging
from datetime import date, timedelta
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ers.config import settings
from ers.engine.aggregator import (
    apply_dispute_override,
    calculate_rating,
    calculation_fingerprint,
)
from ers.engine.history import (
    DisputeSnapshot,
    HistoryEntry,
    QualityMetrics,
    RatingSnapshot,
    build_history_entry,
    compute_quality_metrics,
)
from ers.engine.policy import RatingPolicy
from ers.engine.weights import WeightProfile, resolve_profile
from ers.errors import InvalidTransitionError, NotFoundError, PersistenceError
from ers.models import FinalRating, RatingHistory, TrackAssessment, WeightProfileRecord
from ers.schemas.enums import (
    AgreementStatus,
    CalculationMethod,
    ChangeType,
    ConfidenceLevel,
    DiscrepancySeverity,
    DisputeStatus,
    GatingMode,
    Rating,
    RatingStatus,
    Track,
)
from ers.schemas.rating import (
    AssessmentInput,
    BatchRecalculateResponse,
    CalculationWeights,
    ComponentScore,
    DiscrepancyResult,
    FinalRatingResult,
    GatingFactor,
    TrackScore,
)
from ers.storage.repositories import (
    create_comparison_log,
    create_final_rating,
    create_history_entry,
    get_agreement_status,
    get_assessor_accuracy,
    get_current_rating as find_current_rating,
    get_employer,
    get_latest_history_entry,
    get_rating_by_inputs,
    list_assessments,
    list_disputes,
    list_employer_ids,
    list_open_ratings,
    list_weight_profiles,
    next_rating_version,
    set_rating_status,
    supersede_open_ratings,
    upsert_quality_metrics,
)

logger = logging.getLogger(__name__)


@lru_cache
def get_policy() -> RatingPolicy:
    """Policy built once from settings."""
    return RatingPolicy.from_settings(settings)


def default_weights() -> CalculationWeights:
    return CalculationWeights(
        project=settings.project_weight,
        expertise=settings.expertise_weight,
        gating=settings.gating_weight,
    )


# Row -> engine record conversion


def to_assessment_input(row: TrackAssessment, accuracy: dict[str, float]) -> AssessmentInput:
    return AssessmentInput(
        assessment_id=str(row.assessment_id),
        track=Track(row.track),
        assessment_date=row.assessment_date,
        assessor_id=row.assessor_id,
        method=row.method,
        confidence_level=ConfidenceLevel(row.confidence_level) if row.confidence_level else None,
        assessor_accuracy=accuracy.get(row.assessor_id) if row.assessor_id else None,
        components=[
            ComponentScore(
                component_id=c.component_id,
                score=c.score,
                label=c.label,
                confidence=ConfidenceLevel(c.confidence) if c.confidence else None,
                evidence=c.evidence,
            )
            for c in row.components
        ],
    )


def to_weight_profile(row: WeightProfileRecord) -> WeightProfile:
    return WeightProfile(
        name=row.name,
        track=Track(row.track),
        role=row.role,
        version=row.version,
        is_default=row.is_default,
        weights=row.weights,
    )


def to_history_entry(row: RatingHistory | None) -> HistoryEntry | None:
    if row is None:
        return None
    return HistoryEntry(
        rating_date=row.rating_date,
        previous_rating=Rating(row.previous_rating) if row.previous_rating else None,
        new_rating=Rating(row.new_rating),
        previous_score=row.previous_score,
        new_score=row.new_score,
        change_type=ChangeType(row.change_type),
        score_change=row.score_change,
        change_magnitude=row.change_magnitude,
        significant_change=row.significant_change,
        days_since_previous=row.days_since_previous,
        trend_consistent=row.trend_consistent,
        anomaly_detected=row.anomaly_detected,
        anomaly_reason=row.anomaly_reason,
    )


def result_from_row(row: FinalRating) -> FinalRatingResult:
    """Rebuild the engine result a persisted rating was created from."""
    return FinalRatingResult(
        employer_id=str(row.employer_id),
        calculation_date=row.rating_date,
        final_score=row.final_score,
        final_rating=Rating(row.final_rating),
        project=TrackScore(
            track=Track.PROJECT,
            score=row.project_score,
            rating=Rating(row.project_rating),
            confidence=ConfidenceLevel(row.project_confidence),
            assessment_count=row.project_assessment_count,
            data_age_days=row.project_data_age_days,
        ),
        expertise=TrackScore(
            track=Track.EXPERTISE,
            score=row.expertise_score,
            rating=Rating(row.expertise_rating),
            confidence=ConfidenceLevel(row.expertise_confidence),
            assessment_count=row.expertise_assessment_count,
            data_age_days=row.expertise_data_age_days,
        ),
        gating=GatingFactor(
            status=AgreementStatus(row.gating_status),
            score=row.gating_score,
            has_active_agreement=row.gating_status
            in (AgreementStatus.ACTIVE.value, AgreementStatus.EXPIRING.value),
        ),
        weights=CalculationWeights(**row.weights),
        method=CalculationMethod(row.calculation_method),
        gating_mode=GatingMode(row.gating_mode),
        discrepancy=DiscrepancyResult(
            score_difference=row.score_difference,
            rating_match=row.rating_match,
            severity=DiscrepancySeverity(row.discrepancy_severity),
            detected=row.discrepancy_detected,
            requires_review=row.review_required,
        ),
        overall_confidence=ConfidenceLevel(row.overall_confidence),
        data_completeness=row.data_completeness,
        review_required=row.review_required,
        review_reason=row.review_reason,
        reconciliation_method=row.reconciliation_method,
        next_review_date=row.next_review_date,
        expiry_date=row.expiry_date,
        scale=row.scale,
        policy_version=row.policy_version,
    )


# Input gathering


async def load_profiles(db: AsyncSession, role: str | None) -> dict[Track, WeightProfile]:
    """Resolve the profile per track: role default, then 'all', then built-in."""
    roles = ["all"] if not role or role == "all" else [role, "all"]
    rows = await list_weight_profiles(db, roles=roles)
    candidates = [to_weight_profile(r) for r in rows]
    return {track: resolve_profile(candidates, track, role) for track in Track}


async def gather_assessments(
    db: AsyncSession, employer_id: str, as_of: date
) -> list[AssessmentInput]:
    windows = {
        Track.PROJECT: settings.project_lookback_days,
        Track.EXPERTISE: settings.expertise_lookback_days,
    }
    rows = []
    for track, days in windows.items():
        rows.extend(
            await list_assessments(
                db, employer_id, track.value, as_of - timedelta(days=days), as_of
            )
        )
    assessor_ids = sorted({r.assessor_id for r in rows if r.assessor_id})
    accuracy = await get_assessor_accuracy(db, assessor_ids, as_of)
    return [to_assessment_input(r, accuracy) for r in rows]


# Persistence


async def persist_result(
    db: AsyncSession,
    result: FinalRatingResult,
    inputs_hash: str | None = None,
    source_dispute_id: str | None = None,
) -> FinalRating:
    """
    Store a result as the employer's newest rating version, supersede the
    older open versions, log the comparison and append a history entry.
    """
    dispute_driven = source_dispute_id is not None
    try:
        previous = to_history_entry(await get_latest_history_entry(db, result.employer_id))
        version = await next_rating_version(db, result.employer_id)
        await supersede_open_ratings(db, result.employer_id)
        status = RatingStatus.UNDER_REVIEW if result.review_required else RatingStatus.ACTIVE
        row = await create_final_rating(
            db,
            result,
            version=version,
            status=status,
            inputs_hash=inputs_hash,
            source_dispute_id=source_dispute_id,
        )
        await create_comparison_log(db, str(row.rating_id), result)
        entry = build_history_entry(
            previous,
            result.final_rating,
            result.final_score,
            result.calculation_date,
            get_policy(),
            dispute_driven=dispute_driven,
        )
        await create_history_entry(db, result.employer_id, str(row.rating_id), entry)
    except SQLAlchemyError as exc:
        raise PersistenceError(
            f"Failed to store rating for employer {result.employer_id}: {exc}"
        ) from exc

    logger.info(
        "Rating v%d stored for employer %s: %s (%s), confidence=%s, status=%s",
        version,
        result.employer_id,
        result.final_rating.value,
        result.final_score,
        result.overall_confidence.value,
        status.value,
    )
    if entry.anomaly_detected:
        logger.warning(
            "Anomalous rating change for employer %s: %s",
            result.employer_id,
            entry.anomaly_reason,
        )
    return row


# Operations


async def calculate_final_rating(
    db: AsyncSession,
    employer_id: str,
    calculation_date: date | None = None,
    weights: CalculationWeights | None = None,
    method: CalculationMethod | str | None = None,
    gating_mode: GatingMode | None = None,
    force_refresh: bool = False,
) -> tuple[FinalRating, bool]:
    """
    Calculate and store a rating for one employer.
    Returns (rating, created). Identical inputs on the same date return the
    existing rating unless force_refresh is set.
    """
    employer = await get_employer(db, employer_id)
    if not employer:
        raise NotFoundError(f"Employer {employer_id} not found")

    policy = get_policy()
    as_of = calculation_date or date.today()
    weights = weights or default_weights()
    method = method or settings.default_calculation_method
    gating_mode = gating_mode or GatingMode(settings.default_gating_mode)

    assessments = await gather_assessments(db, employer_id, as_of)
    agreement = await get_agreement_status(db, employer_id, as_of)
    agreement_status = agreement.status if agreement else None
    profiles = await load_profiles(db, employer.role)

    options = {
        "gating_mode": gating_mode,
        "profiles": profiles,
        "weights": weights,
        "method": method,
    }
    fingerprint = calculation_fingerprint(
        employer_id, as_of, assessments, agreement_status, policy, **options
    )
    if not force_refresh:
        existing = await get_rating_by_inputs(db, employer_id, as_of, fingerprint)
        if existing:
            logger.debug("Inputs unchanged for employer %s, reusing rating", employer_id)
            return existing, False

    result = calculate_rating(
        employer_id, as_of, assessments, agreement_status, policy, **options
    )
    row = await persist_result(db, result, inputs_hash=fingerprint)
    return row, True


async def get_current_rating(
    db: AsyncSession, employer_id: str, today: date | None = None
) -> FinalRating:
    """Latest open, non-expired rating. Calculated on demand when none exists."""
    today = today or date.today()
    rating = await find_current_rating(db, employer_id, today)
    if rating:
        return rating
    logger.info("No current rating for employer %s, calculating", employer_id)
    rating, _ = await calculate_final_rating(db, employer_id, calculation_date=today)
    return rating


async def batch_recalculate(
    db: AsyncSession,
    employer_ids: list[str] | None = None,
    employer_role: str | None = None,
    force_refresh: bool = False,
    limit: int = 100,
    calculation_date: date | None = None,
    method: str | None = None,
) -> BatchRecalculateResponse:
    """
    Recalculate many employers. Each one runs in its own savepoint; a failure
    is recorded and the batch moves on.
    """
    if employer_ids:
        targets = employer_ids[:limit]
    else:
        targets = await list_employer_ids(db, role=employer_role, limit=limit)

    summary = BatchRecalculateResponse()
    for employer_id in targets:
        try:
            async with db.begin_nested():
                _, created = await calculate_final_rating(
                    db,
                    employer_id,
                    calculation_date=calculation_date,
                    method=method,
                    force_refresh=force_refresh,
                )
        except Exception as exc:
            logger.warning("Batch recalculation failed for employer %s: %s", employer_id, exc)
            summary.failed.append(employer_id)
            summary.errors[employer_id] = str(exc)
            continue
        if created:
            summary.succeeded.append(employer_id)
        else:
            summary.skipped.append(employer_id)

    logger.info(
        "Batch recalculation: %d succeeded, %d skipped, %d failed",
        len(summary.succeeded),
        len(summary.skipped),
        len(summary.failed),
    )
    return summary


async def apply_dispute_resolution(
    db: AsyncSession,
    rating: FinalRating,
    dispute_id: str,
    new_rating: Rating | None,
    new_score: float | None,
    resolved_on: date,
) -> FinalRating:
    """New rating version carrying a dispute's outcome."""
    result = apply_dispute_override(
        result_from_row(rating),
        resolved_on,
        get_policy(),
        new_rating=new_rating,
        new_score=new_score,
    )
    return await persist_result(db, result, source_dispute_id=dispute_id)


async def archive_rating(db: AsyncSession, rating: FinalRating) -> FinalRating:
    """Only superseded ratings can be archived."""
    if rating.rating_status != RatingStatus.SUPERSEDED.value:
        raise InvalidTransitionError(rating.rating_status, RatingStatus.ARCHIVED.value)
    await set_rating_status(db, rating, RatingStatus.ARCHIVED)
    return rating


async def refresh_quality_metrics(
    db: AsyncSession, metric_date: date | None = None
) -> QualityMetrics:
    """Recompute and store the quality rollup for a date."""
    metric_date = metric_date or date.today()
    ratings = await list_open_ratings(db)
    disputes = await list_disputes(db, metric_date)
    metrics = compute_quality_metrics(
        metric_date,
        [
            RatingSnapshot(
                employer_id=str(r.employer_id),
                final_rating=Rating(r.final_rating),
                overall_confidence=ConfidenceLevel(r.overall_confidence),
                data_completeness=r.data_completeness,
                discrepancy_detected=r.discrepancy_detected,
                discrepancy_level=r.discrepancy_level,
                review_required=r.review_required,
                rating_status=RatingStatus(r.rating_status),
            )
            for r in ratings
        ],
        [
            DisputeSnapshot(
                status=DisputeStatus(d.status),
                filed_on=d.filed_on,
                closed_on=d.closed_on,
                rating_changed=d.new_rating_id is not None,
            )
            for d in disputes
        ],
        get_policy(),
    )
    try:
        await upsert_quality_metrics(db, metrics)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Failed to store quality metrics: {exc}") from exc
    return metrics
