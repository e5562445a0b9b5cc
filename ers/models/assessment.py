"""Track assessment, component and assessor reliability models."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ers.database import Base


class TrackAssessment(Base):
    """One dated assessment of an employer on one track - immutable once stored."""

    __tablename__ = "track_assessments"

    assessment_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    employer_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("employers.employer_id"), nullable=False, index=True
    )
    track: Mapped[str] = mapped_column(String(20), nullable=False)  # project|expertise
    assessment_date: Mapped[date] = mapped_column(Date, nullable=False)
    assessor_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    confidence_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    components: Mapped[list["AssessmentComponent"]] = relationship(
        back_populates="assessment", order_by="AssessmentComponent.position"
    )


class AssessmentComponent(Base):
    """Rated sub-criterion of an assessment."""

    __tablename__ = "assessment_components"

    component_pk: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    assessment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("track_assessments.assessment_id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    component_id: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence: Mapped[str | None] = mapped_column(String(20), nullable=True)
    evidence: Mapped[str | None] = mapped_column(Text, nullable=True)

    assessment: Mapped[TrackAssessment] = relationship(back_populates="components")


class AssessorReliability(Base):
    """Accuracy of an assessor over a period, maintained by the reputation process."""

    __tablename__ = "assessor_reliability"

    reliability_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    assessor_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    accuracy_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    assessments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
