"""Employer and agreement status models."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from ers.database import Base


class Employer(Base):
    """Rated employer. Role selects the weight profile scope."""

    __tablename__ = "employers"

    employer_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="all")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AgreementStatusRecord(Base):
    """Formal agreement (EBA) status observations, latest effective row wins."""

    __tablename__ = "agreement_statuses"

    status_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    employer_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("employers.employer_id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # active|expiring|expired|none|unknown
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    source: Mapped[str | None] = mapped_column(Text, nullable=True)
