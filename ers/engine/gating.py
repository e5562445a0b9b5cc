"""Gating factor resolver - agreement status to a fixed score on the scale."""

from ers.engine.policy import RatingPolicy
from ers.schemas.enums import AgreementStatus
from ers.schemas.rating import GatingFactor


def normalize_status(status: AgreementStatus | str | bool | None) -> AgreementStatus:
    """Accept a graded status, its name, or a plain has-agreement flag."""
    if status is None:
        return AgreementStatus.UNKNOWN
    if isinstance(status, bool):
        return AgreementStatus.ACTIVE if status else AgreementStatus.NONE
    return AgreementStatus(status)


def resolve_gating(
    status: AgreementStatus | str | bool | None, policy: RatingPolicy
) -> GatingFactor:
    """Map agreement status to its fixed score. Unknown status carries no score."""
    status = normalize_status(status)
    score = policy.gating_scores.get(status)
    return GatingFactor(
        status=status,
        score=score,
        rating=policy.scale.label_for(score),
        has_active_agreement=status in (AgreementStatus.ACTIVE, AgreementStatus.EXPIRING),
    )


def is_no_agreement(gating: GatingFactor) -> bool:
    return gating.status in (AgreementStatus.NONE, AgreementStatus.EXPIRED)
