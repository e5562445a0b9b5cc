"""Dispute endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ers.api.errors import http_error
from ers.database import get_db
from ers.errors import RatingError
from ers.models import RatingDispute
from ers.schemas.dispute import (
    AppealDecisionRequest,
    AppealRequest,
    DisputeResponse,
    DisputeTransitionRequest,
    FileDisputeRequest,
)
from ers.schemas.enums import AppealStatus, DisputeCategory, DisputeStatus, Rating
from ers.services.disputes import decide_appeal, file_appeal, file_dispute, transition_dispute

router = APIRouter()


def dispute_response(row: RatingDispute) -> DisputeResponse:
    return DisputeResponse(
        dispute_id=str(row.dispute_id),
        rating_id=str(row.rating_id),
        employer_id=str(row.employer_id),
        category=DisputeCategory(row.category),
        reason=row.reason,
        status=DisputeStatus(row.status),
        filed_on=row.filed_on,
        proposed_rating=Rating(row.proposed_rating) if row.proposed_rating else None,
        proposed_score=row.proposed_score,
        reviewer_id=row.reviewer_id,
        review_deadline=row.review_deadline,
        resolved_rating=Rating(row.resolved_rating) if row.resolved_rating else None,
        resolved_score=row.resolved_score,
        closed_on=row.closed_on,
        new_rating_id=str(row.new_rating_id) if row.new_rating_id else None,
        appeal_status=AppealStatus(row.appeal_status),
        updated_at=row.updated_at,
    )


@router.post("/ratings/{rating_id}/disputes", response_model=DisputeResponse, status_code=201)
async def create(
    rating_id: str,
    body: FileDisputeRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """File a dispute against a rating."""
    try:
        dispute = await file_dispute(
            db,
            rating_id,
            reason=body.reason,
            category=body.category,
            proposed_rating=body.proposed_rating,
            proposed_score=body.proposed_score,
            filed_by=body.filed_by,
        )
    except RatingError as exc:
        raise http_error(exc) from exc
    return dispute_response(dispute)


@router.post("/disputes/{dispute_id}/transition", response_model=DisputeResponse)
async def transition(
    dispute_id: str,
    body: DisputeTransitionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Move a dispute through review. Resolving with a new rating issues a new version."""
    try:
        dispute = await transition_dispute(
            db,
            dispute_id,
            target=body.target,
            reviewer_id=body.reviewer_id,
            notes=body.notes,
            resolved_rating=body.resolved_rating,
            resolved_score=body.resolved_score,
        )
    except RatingError as exc:
        raise http_error(exc) from exc
    return dispute_response(dispute)


@router.post("/disputes/{dispute_id}/appeal", response_model=DisputeResponse)
async def appeal(
    dispute_id: str,
    body: AppealRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Appeal a resolved or rejected dispute within 30 days."""
    try:
        dispute = await file_appeal(db, dispute_id, reason=body.reason)
    except RatingError as exc:
        raise http_error(exc) from exc
    return dispute_response(dispute)


@router.post("/disputes/{dispute_id}/appeal/decision", response_model=DisputeResponse)
async def appeal_decision(
    dispute_id: str,
    body: AppealDecisionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        dispute = await decide_appeal(db, dispute_id, target=body.target, notes=body.notes)
    except RatingError as exc:
        raise http_error(exc) from exc
    return dispute_response(dispute)
