"""Repository functions for employers, assessments, profiles, ratings and disputes."""

from datetime import date, datetime, timezone
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ers.engine.history import HistoryEntry, QualityMetrics
from ers.models import (
    AgreementStatusRecord,
    AssessorReliability,
    Employer,
    FinalRating,
    RatingComparisonLog,
    RatingDispute,
    RatingHistory,
    RatingQualityMetric,
    TrackAssessment,
    WeightProfileRecord,
)
from ers.schemas.enums import RatingStatus
from ers.schemas.rating import FinalRatingResult

OPEN_STATUSES = (
    RatingStatus.ACTIVE.value,
    RatingStatus.UNDER_REVIEW.value,
    RatingStatus.DISPUTED.value,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Employers and assessment data


async def get_employer(db: AsyncSession, employer_id: str) -> Employer | None:
    result = await db.execute(select(Employer).where(Employer.employer_id == employer_id))
    return result.scalar_one_or_none()


async def list_employer_ids(
    db: AsyncSession, role: str | None = None, limit: int = 100
) -> list[str]:
    """Employer ids, optionally filtered by role, in stable order."""
    query = select(Employer.employer_id).order_by(Employer.name, Employer.employer_id)
    if role:
        query = query.where(Employer.role == role)
    result = await db.execute(query.limit(limit))
    return [str(row) for row in result.scalars().all()]


async def list_assessments(
    db: AsyncSession, employer_id: str, track: str, since: date, until: date
) -> list[TrackAssessment]:
    """Assessments for one track inside [since, until], oldest first, with components."""
    result = await db.execute(
        select(TrackAssessment)
        .options(selectinload(TrackAssessment.components))
        .where(
            TrackAssessment.employer_id == employer_id,
            TrackAssessment.track == track,
            TrackAssessment.assessment_date >= since,
            TrackAssessment.assessment_date <= until,
        )
        .order_by(TrackAssessment.assessment_date, TrackAssessment.assessment_id)
    )
    return list(result.scalars().all())


async def get_agreement_status(
    db: AsyncSession, employer_id: str, as_of: date
) -> AgreementStatusRecord | None:
    """Latest agreement status effective on or before the date."""
    result = await db.execute(
        select(AgreementStatusRecord)
        .where(
            AgreementStatusRecord.employer_id == employer_id,
            AgreementStatusRecord.effective_date <= as_of,
        )
        .order_by(AgreementStatusRecord.effective_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_assessor_accuracy(
    db: AsyncSession, assessor_ids: list[str], as_of: date
) -> dict[str, float]:
    """Accuracy percentage per assessor for the period covering the date."""
    if not assessor_ids:
        return {}
    result = await db.execute(
        select(AssessorReliability)
        .where(
            AssessorReliability.assessor_id.in_(assessor_ids),
            AssessorReliability.period_start <= as_of,
        )
        .order_by(AssessorReliability.period_end)
    )
    accuracy = {}
    for row in result.scalars().all():
        # later periods overwrite earlier ones
        accuracy[row.assessor_id] = row.accuracy_percentage
    return accuracy


# Weight profiles


async def list_weight_profiles(
    db: AsyncSession, track: str | None = None, roles: list[str] | None = None
) -> list[WeightProfileRecord]:
    """Active profiles, optionally filtered by track and role."""
    query = select(WeightProfileRecord).where(WeightProfileRecord.is_active.is_(True))
    if track:
        query = query.where(WeightProfileRecord.track == track)
    if roles:
        query = query.where(WeightProfileRecord.role.in_(roles))
    result = await db.execute(
        query.order_by(WeightProfileRecord.track, WeightProfileRecord.role, WeightProfileRecord.name)
    )
    return list(result.scalars().all())


async def create_weight_profile_version(
    db: AsyncSession,
    name: str,
    track: str,
    role: str,
    weights: dict[str, float],
    is_default: bool,
    description: str | None = None,
) -> WeightProfileRecord:
    """
    Save a profile. An existing (name, track, role) gets version+1 and the
    previous versions are deactivated. A new default clears the others.
    """
    result = await db.execute(
        select(func.max(WeightProfileRecord.version)).where(
            WeightProfileRecord.name == name,
            WeightProfileRecord.track == track,
            WeightProfileRecord.role == role,
        )
    )
    latest = result.scalar_one_or_none()
    if latest is not None:
        await db.execute(
            update(WeightProfileRecord)
            .where(
                WeightProfileRecord.name == name,
                WeightProfileRecord.track == track,
                WeightProfileRecord.role == role,
            )
            .values(is_active=False, is_default=False)
        )
    if is_default:
        await db.execute(
            update(WeightProfileRecord)
            .where(
                WeightProfileRecord.track == track,
                WeightProfileRecord.role == role,
            )
            .values(is_default=False)
        )
    profile = WeightProfileRecord(
        profile_id=str(uuid4()),
        name=name,
        track=track,
        role=role,
        version=(latest or 0) + 1,
        weights=weights,
        is_default=is_default,
        is_active=True,
        description=description,
        created_at=_now(),
    )
    db.add(profile)
    await db.flush()
    return profile


# Final ratings


async def get_rating(db: AsyncSession, rating_id: str) -> FinalRating | None:
    result = await db.execute(select(FinalRating).where(FinalRating.rating_id == rating_id))
    return result.scalar_one_or_none()


async def get_rating_by_inputs(
    db: AsyncSession, employer_id: str, rating_date: date, inputs_hash: str
) -> FinalRating | None:
    """Open rating already computed from identical inputs for this date."""
    result = await db.execute(
        select(FinalRating)
        .where(
            FinalRating.employer_id == employer_id,
            FinalRating.rating_date == rating_date,
            FinalRating.inputs_hash == inputs_hash,
            FinalRating.rating_status.in_(OPEN_STATUSES),
        )
        .order_by(FinalRating.version.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_current_rating(
    db: AsyncSession, employer_id: str, today: date
) -> FinalRating | None:
    """Latest open, non-expired rating."""
    result = await db.execute(
        select(FinalRating)
        .where(
            FinalRating.employer_id == employer_id,
            FinalRating.rating_status.in_(OPEN_STATUSES),
            (FinalRating.expiry_date.is_(None)) | (FinalRating.expiry_date >= today),
        )
        .order_by(FinalRating.version.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def next_rating_version(db: AsyncSession, employer_id: str) -> int:
    result = await db.execute(
        select(func.max(FinalRating.version)).where(FinalRating.employer_id == employer_id)
    )
    return (result.scalar_one_or_none() or 0) + 1


async def supersede_open_ratings(db: AsyncSession, employer_id: str) -> None:
    """Move every open rating of the employer to superseded."""
    await db.execute(
        update(FinalRating)
        .where(
            FinalRating.employer_id == employer_id,
            FinalRating.rating_status.in_(OPEN_STATUSES),
        )
        .values(rating_status=RatingStatus.SUPERSEDED.value, updated_at=_now())
    )


async def set_rating_status(db: AsyncSession, rating: FinalRating, status: RatingStatus) -> None:
    rating.rating_status = status.value
    rating.updated_at = _now()
    await db.flush()


async def create_final_rating(
    db: AsyncSession,
    result: FinalRatingResult,
    version: int,
    status: RatingStatus,
    inputs_hash: str | None = None,
    source_dispute_id: str | None = None,
) -> FinalRating:
    """Create a final rating row from an engine result."""
    now = _now()
    rating = FinalRating(
        rating_id=str(uuid4()),
        employer_id=result.employer_id,
        rating_date=result.calculation_date,
        version=version,
        final_score=result.final_score,
        final_rating=result.final_rating.value,
        project_score=result.project.score,
        project_rating=result.project.rating.value,
        project_confidence=result.project.confidence.value,
        project_assessment_count=result.project.assessment_count,
        project_data_age_days=result.project.data_age_days,
        expertise_score=result.expertise.score,
        expertise_rating=result.expertise.rating.value,
        expertise_confidence=result.expertise.confidence.value,
        expertise_assessment_count=result.expertise.assessment_count,
        expertise_data_age_days=result.expertise.data_age_days,
        gating_status=result.gating.status.value,
        gating_score=result.gating.score,
        weights=result.weights.model_dump(),
        calculation_method=result.method.value,
        gating_mode=result.gating_mode.value,
        score_difference=result.discrepancy.score_difference,
        rating_match=result.discrepancy.rating_match,
        discrepancy_severity=result.discrepancy.severity.value,
        discrepancy_detected=result.discrepancy.detected,
        discrepancy_level=result.discrepancy.level,
        reconciliation_method=result.reconciliation_method,
        overall_confidence=result.overall_confidence.value,
        data_completeness=result.data_completeness,
        rating_status=status.value,
        review_required=result.review_required,
        review_reason=result.review_reason,
        next_review_date=result.next_review_date,
        expiry_date=result.expiry_date,
        scale=result.scale,
        policy_version=result.policy_version,
        inputs_hash=inputs_hash,
        source_dispute_id=source_dispute_id,
        created_at=now,
        updated_at=now,
    )
    db.add(rating)
    await db.flush()
    return rating


async def create_comparison_log(
    db: AsyncSession, rating_id: str, result: FinalRatingResult
) -> RatingComparisonLog:
    entry = RatingComparisonLog(
        comparison_id=str(uuid4()),
        rating_id=rating_id,
        employer_id=result.employer_id,
        comparison_date=result.calculation_date,
        project_score=result.project.score,
        project_rating=result.project.rating.value,
        expertise_score=result.expertise.score,
        expertise_rating=result.expertise.rating.value,
        score_difference=result.discrepancy.score_difference,
        rating_match=result.discrepancy.rating_match,
        severity=result.discrepancy.severity.value,
        requires_review=result.discrepancy.requires_review,
        created_at=_now(),
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_open_ratings(db: AsyncSession) -> list[FinalRating]:
    """Every open rating, used for the quality rollup."""
    result = await db.execute(
        select(FinalRating).where(FinalRating.rating_status.in_(OPEN_STATUSES))
    )
    return list(result.scalars().all())


# History


async def get_latest_history_entry(db: AsyncSession, employer_id: str) -> RatingHistory | None:
    result = await db.execute(
        select(RatingHistory)
        .where(RatingHistory.employer_id == employer_id)
        .order_by(RatingHistory.rating_date.desc(), RatingHistory.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_history_entry(
    db: AsyncSession, employer_id: str, rating_id: str, entry: HistoryEntry
) -> RatingHistory:
    row = RatingHistory(
        entry_id=str(uuid4()),
        employer_id=employer_id,
        rating_id=rating_id,
        rating_date=entry.rating_date,
        previous_rating=entry.previous_rating.value if entry.previous_rating else None,
        new_rating=entry.new_rating.value,
        previous_score=entry.previous_score,
        new_score=entry.new_score,
        change_type=entry.change_type.value,
        score_change=entry.score_change,
        change_magnitude=entry.change_magnitude,
        significant_change=entry.significant_change,
        days_since_previous=entry.days_since_previous,
        trend_consistent=entry.trend_consistent,
        anomaly_detected=entry.anomaly_detected,
        anomaly_reason=entry.anomaly_reason,
        created_at=_now(),
    )
    db.add(row)
    await db.flush()
    return row


async def list_history(db: AsyncSession, employer_id: str, limit: int = 50) -> list[RatingHistory]:
    """History entries, newest first."""
    result = await db.execute(
        select(RatingHistory)
        .where(RatingHistory.employer_id == employer_id)
        .order_by(RatingHistory.rating_date.desc(), RatingHistory.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


# Disputes


async def get_dispute(db: AsyncSession, dispute_id: str) -> RatingDispute | None:
    result = await db.execute(select(RatingDispute).where(RatingDispute.dispute_id == dispute_id))
    return result.scalar_one_or_none()


async def create_dispute(db: AsyncSession, **fields) -> RatingDispute:
    now = _now()
    dispute = RatingDispute(
        dispute_id=str(uuid4()),
        status="pending",
        appeal_status="none",
        created_at=now,
        updated_at=now,
        **fields,
    )
    db.add(dispute)
    await db.flush()
    return dispute


async def list_disputes(db: AsyncSession, filed_on_or_before: date) -> list[RatingDispute]:
    result = await db.execute(
        select(RatingDispute).where(RatingDispute.filed_on <= filed_on_or_before)
    )
    return list(result.scalars().all())


# Quality metrics


async def upsert_quality_metrics(db: AsyncSession, metrics: QualityMetrics) -> None:
    """One row per metric date, replaced on recomputation."""
    values = metrics.model_dump()
    values["updated_at"] = _now()
    stmt = insert(RatingQualityMetric).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[RatingQualityMetric.metric_date],
        set_={k: v for k, v in values.items() if k != "metric_date"},
    )
    await db.execute(stmt)


async def get_quality_metrics(db: AsyncSession, metric_date: date) -> RatingQualityMetric | None:
    result = await db.execute(
        select(RatingQualityMetric).where(RatingQualityMetric.metric_date == metric_date)
    )
    return result.scalar_one_or_none()
