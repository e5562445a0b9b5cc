"""Rating quality metrics model."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ers.database import Base


class RatingQualityMetric(Base):
    """One recomputed rollup row per metric date."""

    __tablename__ = "rating_quality_metrics"

    metric_date: Mapped[date] = mapped_column(Date, primary_key=True)
    total_employers_rated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ratings_by_category: Mapped[dict] = mapped_column(JSONB, nullable=False)
    average_confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    data_completeness_average: Mapped[float | None] = mapped_column(Float, nullable=True)
    discrepancy_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_discrepancy_level: Mapped[float | None] = mapped_column(Float, nullable=True)
    pending_discrepancies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resolved_discrepancies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    disputes_filed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    disputes_resolved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resolution_success_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_resolution_days: Mapped[float | None] = mapped_column(Float, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
