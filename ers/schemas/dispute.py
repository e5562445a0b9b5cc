"""Dispute and appeal request/response schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from ers.schemas.enums import AppealStatus, DisputeCategory, DisputeStatus, Rating


class FileDisputeRequest(BaseModel):
    """POST /v1/ratings/{rating_id}/disputes request."""

    reason: str = Field(min_length=1)
    category: DisputeCategory = DisputeCategory.OTHER
    proposed_rating: Rating | None = None
    proposed_score: float | None = None
    filed_by: str | None = None


class DisputeTransitionRequest(BaseModel):
    """Move a dispute to another state. Resolution fields only apply to 'resolved'."""

    target: DisputeStatus
    reviewer_id: str | None = None
    notes: str | None = None
    resolved_rating: Rating | None = None
    resolved_score: float | None = None


class AppealRequest(BaseModel):
    reason: str = Field(min_length=1)


class AppealDecisionRequest(BaseModel):
    target: AppealStatus
    notes: str | None = None


class DisputeResponse(BaseModel):
    dispute_id: str
    rating_id: str
    employer_id: str
    category: DisputeCategory
    reason: str
    status: DisputeStatus
    filed_on: date
    proposed_rating: Rating | None = None
    proposed_score: float | None = None
    reviewer_id: str | None = None
    review_deadline: date | None = None
    resolved_rating: Rating | None = None
    resolved_score: float | None = None
    closed_on: date | None = None
    new_rating_id: str | None = None
    appeal_status: AppealStatus
    updated_at: datetime
