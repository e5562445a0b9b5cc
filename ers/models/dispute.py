"""Rating dispute model."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ers.database import Base


class RatingDispute(Base):
    """Dispute against one final rating, with an optional appeal."""

    __tablename__ = "rating_disputes"

    dispute_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    rating_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("final_ratings.rating_id"), nullable=False, index=True
    )
    employer_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    filed_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    filed_on: Mapped[date] = mapped_column(Date, nullable=False)
    proposed_rating: Mapped[str | None] = mapped_column(String(20), nullable=True)
    proposed_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="pending"
    )  # pending|under_review|evidence_collection|mediation|resolved|rejected|escalated

    reviewer_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_started_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    review_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)

    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_rating: Mapped[str | None] = mapped_column(String(20), nullable=True)
    resolved_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    closed_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    new_rating_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    appeal_status: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    appeal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    appeal_filed_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    appeal_decision_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
