"""Dispute workflow service."""

import logging
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ers.engine.disputes import (
    check_appeal_transition,
    check_transition,
    is_terminal,
    rating_status_after,
    review_deadline,
)
from ers.errors import InvalidTransitionError, NotFoundError, RatingValidationError
from ers.models import RatingDispute
from ers.schemas.enums import (
    AppealStatus,
    DisputeCategory,
    DisputeStatus,
    Rating,
    RatingStatus,
)
from ers.services.ratings import apply_dispute_resolution, get_policy
from ers.storage.repositories import (
    create_dispute,
    get_current_rating,
    get_dispute,
    get_rating,
    set_rating_status,
)

logger = logging.getLogger(__name__)

DISPUTABLE_STATUSES = (RatingStatus.ACTIVE.value, RatingStatus.UNDER_REVIEW.value)


def _touch(dispute: RatingDispute) -> None:
    dispute.updated_at = datetime.now(timezone.utc)


async def _load_dispute(db: AsyncSession, dispute_id: str) -> RatingDispute:
    dispute = await get_dispute(db, dispute_id)
    if not dispute:
        raise NotFoundError(f"Dispute {dispute_id} not found")
    return dispute


async def file_dispute(
    db: AsyncSession,
    rating_id: str,
    reason: str,
    category: DisputeCategory = DisputeCategory.OTHER,
    proposed_rating: Rating | None = None,
    proposed_score: float | None = None,
    filed_by: str | None = None,
    today: date | None = None,
) -> RatingDispute:
    """Open a dispute against a rating and mark the rating disputed."""
    rating = await get_rating(db, rating_id)
    if not rating:
        raise NotFoundError(f"Rating {rating_id} not found")
    if rating.rating_status not in DISPUTABLE_STATUSES:
        raise InvalidTransitionError(rating.rating_status, RatingStatus.DISPUTED.value)
    if proposed_score is not None:
        get_policy().scale.validate_score(proposed_score)

    dispute = await create_dispute(
        db,
        rating_id=str(rating.rating_id),
        employer_id=str(rating.employer_id),
        category=category.value,
        reason=reason,
        filed_by=filed_by,
        filed_on=today or date.today(),
        proposed_rating=proposed_rating.value if proposed_rating else None,
        proposed_score=proposed_score,
    )
    await set_rating_status(db, rating, RatingStatus.DISPUTED)
    logger.info("Dispute %s filed against rating %s", dispute.dispute_id, rating_id)
    return dispute


async def transition_dispute(
    db: AsyncSession,
    dispute_id: str,
    target: DisputeStatus,
    reviewer_id: str | None = None,
    notes: str | None = None,
    resolved_rating: Rating | None = None,
    resolved_score: float | None = None,
    today: date | None = None,
) -> RatingDispute:
    """
    Move a dispute to `target`. Resolving with a new label or score creates a
    new rating version; closing without one restores the rating's status.
    """
    today = today or date.today()
    dispute = await _load_dispute(db, dispute_id)
    current = DisputeStatus(dispute.status)
    check_transition(current, target)

    rating_changed = target == DisputeStatus.RESOLVED and (
        resolved_rating is not None or resolved_score is not None
    )
    if (resolved_rating is not None or resolved_score is not None) and not rating_changed:
        raise RatingValidationError("A new rating can only be given when resolving a dispute")

    if target == DisputeStatus.UNDER_REVIEW and dispute.review_started_on is None:
        dispute.reviewer_id = reviewer_id or dispute.reviewer_id
        dispute.review_started_on = today
        dispute.review_deadline = review_deadline(today)
    elif reviewer_id:
        dispute.reviewer_id = reviewer_id

    rating = await get_rating(db, dispute.rating_id)
    still_disputed = rating is not None and rating.rating_status == RatingStatus.DISPUTED.value
    if rating_changed:
        base = rating
        if not still_disputed:
            # a newer version superseded the disputed one; override the current rating
            base = await get_current_rating(db, dispute.employer_id, today)
            if base is None:
                raise InvalidTransitionError(
                    rating.rating_status if rating else "missing", "dispute_override"
                )
        new_row = await apply_dispute_resolution(
            db,
            base,
            dispute_id=str(dispute.dispute_id),
            new_rating=resolved_rating,
            new_score=resolved_score,
            resolved_on=today,
        )
        dispute.new_rating_id = str(new_row.rating_id)
        dispute.resolved_rating = new_row.final_rating
        dispute.resolved_score = new_row.final_score
    else:
        restored = rating_status_after(target, rating_changed=False)
        if restored is not None and still_disputed:
            await set_rating_status(db, rating, restored)

    if is_terminal(target):
        dispute.closed_on = today
        dispute.resolution_notes = notes
    dispute.status = target.value
    _touch(dispute)
    await db.flush()
    logger.info("Dispute %s moved %s -> %s", dispute_id, current.value, target.value)
    return dispute


async def file_appeal(
    db: AsyncSession, dispute_id: str, reason: str, today: date | None = None
) -> RatingDispute:
    """Appeal a closed dispute within the appeal window."""
    today = today or date.today()
    dispute = await _load_dispute(db, dispute_id)
    check_appeal_transition(
        DisputeStatus(dispute.status),
        AppealStatus(dispute.appeal_status),
        AppealStatus.FILED,
        dispute.closed_on,
        today,
    )
    dispute.appeal_status = AppealStatus.FILED.value
    dispute.appeal_reason = reason
    dispute.appeal_filed_on = today
    _touch(dispute)
    await db.flush()
    logger.info("Appeal filed on dispute %s", dispute_id)
    return dispute


async def decide_appeal(
    db: AsyncSession,
    dispute_id: str,
    target: AppealStatus,
    notes: str | None = None,
    today: date | None = None,
) -> RatingDispute:
    """Advance an appeal. An accepted appeal puts the employer's rating under review."""
    today = today or date.today()
    dispute = await _load_dispute(db, dispute_id)
    check_appeal_transition(
        DisputeStatus(dispute.status),
        AppealStatus(dispute.appeal_status),
        target,
        dispute.closed_on,
        today,
    )
    if target == AppealStatus.ACCEPTED:
        current = await get_current_rating(db, dispute.employer_id, today)
        if current is not None:
            await set_rating_status(db, current, RatingStatus.UNDER_REVIEW)
    dispute.appeal_status = target.value
    if notes:
        dispute.appeal_decision_notes = notes
    _touch(dispute)
    await db.flush()
    logger.info("Appeal on dispute %s moved to %s", dispute_id, target.value)
    return dispute
