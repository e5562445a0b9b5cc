"""Closed value sets shared by the engine, ORM and API schemas."""

from enum import Enum


class Track(str, Enum):
    PROJECT = "project"
    EXPERTISE = "expertise"


class Rating(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    AMBER = "amber"
    RED = "red"
    UNKNOWN = "unknown"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"

    @property
    def rank(self) -> int:
        """Higher is more confident."""
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    ConfidenceLevel.VERY_LOW: 0,
    ConfidenceLevel.LOW: 1,
    ConfidenceLevel.MEDIUM: 2,
    ConfidenceLevel.HIGH: 3,
}


class AgreementStatus(str, Enum):
    """Formal agreement (EBA) status of an employer."""

    ACTIVE = "active"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    NONE = "none"
    UNKNOWN = "unknown"


class DiscrepancySeverity(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        return _SEVERITY_LEVEL[self]


_SEVERITY_LEVEL = {
    DiscrepancySeverity.NONE: 0,
    DiscrepancySeverity.MINOR: 1,
    DiscrepancySeverity.MODERATE: 2,
    DiscrepancySeverity.MAJOR: 3,
    DiscrepancySeverity.CRITICAL: 4,
}


class CalculationMethod(str, Enum):
    WEIGHTED_AVERAGE = "weighted_average"
    HYBRID = "hybrid"
    WEIGHTED_SUM = "weighted_sum"
    MINIMUM_SCORE = "minimum_score"
    DISPUTE_OVERRIDE = "dispute_override"


class GatingMode(str, Enum):
    BLEND = "blend"
    OVERRIDE = "override"
    FLOOR = "floor"


class RatingStatus(str, Enum):
    ACTIVE = "active"
    UNDER_REVIEW = "under_review"
    DISPUTED = "disputed"
    SUPERSEDED = "superseded"
    ARCHIVED = "archived"


class ChangeType(str, Enum):
    FIRST_RATING = "first_rating"
    IMPROVEMENT = "improvement"
    DECLINE = "decline"
    MAINTAINED = "maintained"
    DISPUTE_DRIVEN = "dispute_driven"


class DisputeStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    EVIDENCE_COLLECTION = "evidence_collection"
    MEDIATION = "mediation"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


class DisputeCategory(str, Enum):
    CALCULATION_ERROR = "calculation_error"
    DATA_INACCURACY = "data_inaccuracy"
    METHODOLOGY = "methodology"
    WEIGHTING = "weighting"
    MISSING_CONTEXT = "missing_context"
    OTHER = "other"


class AppealStatus(str, Enum):
    NONE = "none"
    FILED = "filed"
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
