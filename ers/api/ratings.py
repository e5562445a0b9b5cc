"""Rating endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ers.api.errors import http_error
from ers.database import get_db
from ers.errors import RatingError
from ers.models import FinalRating, RatingHistory
from ers.schemas.enums import (
    AgreementStatus,
    ChangeType,
    ConfidenceLevel,
    DiscrepancySeverity,
    Rating,
    RatingStatus,
)
from ers.schemas.rating import (
    BatchRecalculateRequest,
    BatchRecalculateResponse,
    CalculateRatingRequest,
    CalculationWeights,
    DiscrepancyResponse,
    FinalRatingResponse,
    QualityMetricsResponse,
    RatingHistoryResponse,
    TrackScoreResponse,
)
from ers.services.ratings import (
    batch_recalculate,
    calculate_final_rating,
    get_current_rating,
    refresh_quality_metrics,
)
from ers.storage.repositories import get_employer, get_quality_metrics, list_history

router = APIRouter()


def rating_response(row: FinalRating) -> FinalRatingResponse:
    return FinalRatingResponse(
        rating_id=str(row.rating_id),
        employer_id=str(row.employer_id),
        rating_date=row.rating_date,
        version=row.version,
        final_score=row.final_score,
        final_rating=Rating(row.final_rating),
        project=TrackScoreResponse(
            score=row.project_score,
            rating=Rating(row.project_rating),
            confidence=ConfidenceLevel(row.project_confidence),
            assessment_count=row.project_assessment_count,
            data_age_days=row.project_data_age_days,
        ),
        expertise=TrackScoreResponse(
            score=row.expertise_score,
            rating=Rating(row.expertise_rating),
            confidence=ConfidenceLevel(row.expertise_confidence),
            assessment_count=row.expertise_assessment_count,
            data_age_days=row.expertise_data_age_days,
        ),
        gating_status=AgreementStatus(row.gating_status),
        gating_score=row.gating_score,
        weights=CalculationWeights(**row.weights),
        calculation_method=row.calculation_method,
        gating_mode=row.gating_mode,
        discrepancy=DiscrepancyResponse(
            score_difference=row.score_difference,
            rating_match=row.rating_match,
            severity=DiscrepancySeverity(row.discrepancy_severity),
            requires_review=row.review_required,
        ),
        overall_confidence=ConfidenceLevel(row.overall_confidence),
        data_completeness=row.data_completeness,
        rating_status=RatingStatus(row.rating_status),
        review_required=row.review_required,
        review_reason=row.review_reason,
        next_review_date=row.next_review_date,
        expiry_date=row.expiry_date,
        scale=row.scale,
        created_at=row.created_at,
    )


def history_response(row: RatingHistory) -> RatingHistoryResponse:
    return RatingHistoryResponse(
        entry_id=str(row.entry_id),
        employer_id=str(row.employer_id),
        rating_id=str(row.rating_id),
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
        created_at=row.created_at,
    )


@router.post("/employers/{employer_id}/ratings/calculate", response_model=FinalRatingResponse)
async def calculate(
    employer_id: str,
    body: CalculateRatingRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Calculate and store a final rating for one employer.
    Identical inputs on the same date return the stored rating unless force_refresh.
    """
    try:
        row, _ = await calculate_final_rating(
            db,
            employer_id,
            calculation_date=body.calculation_date,
            weights=body.weights,
            method=body.method,
            gating_mode=body.gating_mode,
            force_refresh=body.force_refresh,
        )
    except RatingError as exc:
        raise http_error(exc) from exc
    return rating_response(row)


@router.get("/employers/{employer_id}/ratings/current", response_model=FinalRatingResponse)
async def current_rating(
    employer_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Latest active, non-expired rating. Calculated on demand if missing."""
    try:
        row = await get_current_rating(db, employer_id)
    except RatingError as exc:
        raise http_error(exc) from exc
    return rating_response(row)


@router.get(
    "/employers/{employer_id}/ratings/history",
    response_model=list[RatingHistoryResponse],
)
async def rating_history(
    employer_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=50, ge=1, le=500),
):
    """Rating history for an employer, newest first."""
    if not await get_employer(db, employer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employer not found")
    rows = await list_history(db, employer_id, limit=limit)
    return [history_response(r) for r in rows]


@router.post("/ratings/batch", response_model=BatchRecalculateResponse)
async def batch(
    body: BatchRecalculateRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Recalculate ratings for many employers. Per-employer failures are reported, not raised."""
    return await batch_recalculate(
        db,
        employer_ids=body.employer_ids,
        employer_role=body.employer_role,
        force_refresh=body.force_refresh,
        limit=body.limit,
        calculation_date=body.calculation_date,
        method=body.method,
    )


@router.get("/ratings/quality-metrics", response_model=QualityMetricsResponse)
async def quality_metrics(
    db: Annotated[AsyncSession, Depends(get_db)],
    metric_date: date | None = None,
    refresh: bool = False,
):
    """Quality rollup for a date. Recomputed when missing or refresh is set."""
    metric_date = metric_date or date.today()
    if not refresh:
        stored = await get_quality_metrics(db, metric_date)
        if stored:
            return QualityMetricsResponse(
                metric_date=stored.metric_date,
                total_employers_rated=stored.total_employers_rated,
                ratings_by_category=stored.ratings_by_category,
                average_confidence_score=stored.average_confidence_score,
                data_completeness_average=stored.data_completeness_average,
                discrepancy_rate=stored.discrepancy_rate,
                average_discrepancy_level=stored.average_discrepancy_level,
                pending_discrepancies=stored.pending_discrepancies,
                resolved_discrepancies=stored.resolved_discrepancies,
                disputes_filed=stored.disputes_filed,
                disputes_resolved=stored.disputes_resolved,
                resolution_success_rate=stored.resolution_success_rate,
                average_resolution_days=stored.average_resolution_days,
            )
    try:
        metrics = await refresh_quality_metrics(db, metric_date)
    except RatingError as exc:
        raise http_error(exc) from exc
    return QualityMetricsResponse(**metrics.model_dump())
