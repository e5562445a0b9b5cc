"""Dispute and appeal state machines.

Every transition is a human action; nothing here moves a dispute on its own.
"""

from datetime import date, timedelta

from ers.errors import InvalidTransitionError
from ers.schemas.enums import AppealStatus, DisputeStatus, RatingStatus

REVIEW_DEADLINE_DAYS = 14
APPEAL_WINDOW_DAYS = 30

ALLOWED_TRANSITIONS: dict[DisputeStatus, frozenset[DisputeStatus]] = {
    DisputeStatus.PENDING: frozenset({DisputeStatus.UNDER_REVIEW, DisputeStatus.REJECTED}),
    DisputeStatus.UNDER_REVIEW: frozenset(
        {
            DisputeStatus.EVIDENCE_COLLECTION,
            DisputeStatus.MEDIATION,
            DisputeStatus.RESOLVED,
            DisputeStatus.REJECTED,
            DisputeStatus.ESCALATED,
        }
    ),
    DisputeStatus.EVIDENCE_COLLECTION: frozenset(
        {
            DisputeStatus.UNDER_REVIEW,
            DisputeStatus.MEDIATION,
            DisputeStatus.RESOLVED,
            DisputeStatus.REJECTED,
            DisputeStatus.ESCALATED,
        }
    ),
    DisputeStatus.MEDIATION: frozenset(
        {DisputeStatus.RESOLVED, DisputeStatus.REJECTED, DisputeStatus.ESCALATED}
    ),
    DisputeStatus.RESOLVED: frozenset(),
    DisputeStatus.REJECTED: frozenset(),
    DisputeStatus.ESCALATED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

APPEAL_TRANSITIONS: dict[AppealStatus, frozenset[AppealStatus]] = {
    AppealStatus.NONE: frozenset({AppealStatus.FILED}),
    AppealStatus.FILED: frozenset({AppealStatus.UNDER_REVIEW}),
    AppealStatus.UNDER_REVIEW: frozenset({AppealStatus.ACCEPTED, AppealStatus.REJECTED}),
    AppealStatus.ACCEPTED: frozenset(),
    AppealStatus.REJECTED: frozenset(),
}

# Rating status to restore when a dispute closes without a new rating.
RATING_STATUS_ON_CLOSE = {
    DisputeStatus.REJECTED: RatingStatus.ACTIVE,
    DisputeStatus.RESOLVED: RatingStatus.ACTIVE,
    DisputeStatus.ESCALATED: RatingStatus.UNDER_REVIEW,
}


def is_terminal(status: DisputeStatus) -> bool:
    return status in TERMINAL_STATES


def check_transition(current: DisputeStatus, target: DisputeStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)


def review_deadline(review_started: date) -> date:
    return review_started + timedelta(days=REVIEW_DEADLINE_DAYS)


def appeal_deadline(closed_on: date) -> date:
    return closed_on + timedelta(days=APPEAL_WINDOW_DAYS)


def check_appeal_transition(
    dispute_status: DisputeStatus,
    current: AppealStatus,
    target: AppealStatus,
    closed_on: date | None,
    today: date,
) -> None:
    """Appeals are only open on resolved/rejected disputes within the window."""
    if target == AppealStatus.FILED:
        if dispute_status not in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED):
            raise InvalidTransitionError(dispute_status.value, "appeal")
        if closed_on is None or today > appeal_deadline(closed_on):
            raise InvalidTransitionError("appeal window closed", target.value)
    if target not in APPEAL_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)


def rating_status_after(status: DisputeStatus, rating_changed: bool) -> RatingStatus | None:
    """
    Status the disputed rating takes after a dispute moves to `status`.
    None means leave it alone (still open, or superseded by a new rating).
    """
    if rating_changed:
        return None
    return RATING_STATUS_ON_CLOSE.get(status)
