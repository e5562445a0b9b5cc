"""Final rating, comparison log and history models."""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from ers.database import Base


class FinalRating(Base):
    """Authoritative rating per employer and date. Versioned, never deleted."""

    __tablename__ = "final_ratings"

    rating_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    employer_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("employers.employer_id"), nullable=False, index=True
    )
    rating_date: Mapped[date] = mapped_column(Date, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    final_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_rating: Mapped[str] = mapped_column(String(20), nullable=False)

    project_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    project_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    project_confidence: Mapped[str] = mapped_column(String(20), nullable=False)
    project_assessment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    project_data_age_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    expertise_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    expertise_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    expertise_confidence: Mapped[str] = mapped_column(String(20), nullable=False)
    expertise_assessment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expertise_data_age_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    gating_status: Mapped[str] = mapped_column(String(20), nullable=False)
    gating_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    weights: Mapped[dict] = mapped_column(JSONB, nullable=False)
    calculation_method: Mapped[str] = mapped_column(String(30), nullable=False)
    gating_mode: Mapped[str] = mapped_column(String(20), nullable=False)

    score_difference: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_match: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discrepancy_severity: Mapped[str] = mapped_column(String(20), nullable=False)
    discrepancy_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discrepancy_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reconciliation_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    overall_confidence: Mapped[str] = mapped_column(String(20), nullable=False)
    data_completeness: Mapped[float] = mapped_column(Float, nullable=False)

    rating_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active|under_review|disputed|superseded|archived
    review_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    next_review_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    scale: Mapped[str] = mapped_column(String(30), nullable=False)
    policy_version: Mapped[str] = mapped_column(String(20), nullable=False)
    inputs_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_dispute_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RatingComparisonLog(Base):
    """Audit row of one project vs expertise comparison - append-only."""

    __tablename__ = "rating_comparison_log"

    comparison_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    rating_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("final_ratings.rating_id"), nullable=False
    )
    employer_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    comparison_date: Mapped[date] = mapped_column(Date, nullable=False)
    project_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    project_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    expertise_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    expertise_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    score_difference: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_match: Mapped[bool] = mapped_column(Boolean, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    requires_review: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RatingHistory(Base):
    """Append-only rating history per employer."""

    __tablename__ = "rating_history"

    entry_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    employer_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    rating_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("final_ratings.rating_id"), nullable=False
    )
    rating_date: Mapped[date] = mapped_column(Date, nullable=False)
    previous_rating: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    new_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)
    score_change: Mapped[float | None] = mapped_column(Float, nullable=True)
    change_magnitude: Mapped[int | None] = mapped_column(Integer, nullable=True)
    significant_change: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    days_since_previous: Mapped[int | None] = mapped_column(Integer, nullable=True)
    trend_consistent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    anomaly_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    anomaly_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
