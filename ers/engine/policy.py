"""Versioned rating policy passed explicitly into every engine call."""

from pydantic import BaseModel, Field

from ers.engine.scales import RatingScale, get_scale
from ers.schemas.enums import AgreementStatus, ConfidenceLevel

POLICY_VERSION = "1.0"


class DiscrepancyThresholds(BaseModel):
    """Score-difference thresholds in native scale units."""

    model_config = {"frozen": True}

    minor: float
    moderate: float
    major: float
    inclusive: bool = True  # legacy compares strictly (diff > threshold)

    def reached(self, difference: float, threshold: float) -> bool:
        if self.inclusive:
            return difference >= threshold
        return difference > threshold


class RecencyRule(BaseModel):
    model_config = {"frozen": True}

    min_count: int
    max_age_days: int
    level: ConfidenceLevel


DISCREPANCY_THRESHOLDS = {
    "four_point": DiscrepancyThresholds(minor=1.0, moderate=1.5, major=2.0),
    "four_point_inverted": DiscrepancyThresholds(minor=1.0, moderate=1.5, major=2.0),
    "legacy": DiscrepancyThresholds(minor=15, moderate=25, major=40, inclusive=False),
}

# No agreement always maps to the worst point of the scale.
GATING_SCORES = {
    "four_point": {
        AgreementStatus.ACTIVE: 3.0,
        AgreementStatus.EXPIRING: 2.0,
        AgreementStatus.EXPIRED: 1.0,
        AgreementStatus.NONE: 1.0,
    },
    "four_point_inverted": {
        AgreementStatus.ACTIVE: 2.0,
        AgreementStatus.EXPIRING: 3.0,
        AgreementStatus.EXPIRED: 4.0,
        AgreementStatus.NONE: 4.0,
    },
    "legacy": {
        AgreementStatus.ACTIVE: 80.0,
        AgreementStatus.EXPIRING: 50.0,
        AgreementStatus.EXPIRED: -20.0,
        AgreementStatus.NONE: -100.0,
    },
}


def _default_recency_rules() -> tuple[RecencyRule, ...]:
    return (
        RecencyRule(min_count=2, max_age_days=60, level=ConfidenceLevel.HIGH),
        RecencyRule(min_count=1, max_age_days=90, level=ConfidenceLevel.MEDIUM),
        RecencyRule(min_count=1, max_age_days=120, level=ConfidenceLevel.LOW),
    )


class RatingPolicy(BaseModel):
    """Immutable snapshot of every tunable the engine uses."""

    model_config = {"frozen": True}

    version: str = POLICY_VERSION
    scale: RatingScale
    discrepancy_thresholds: DiscrepancyThresholds
    gating_scores: dict[AgreementStatus, float]

    recency_rules: tuple[RecencyRule, ...] = Field(default_factory=_default_recency_rules)
    confidence_base_weights: dict[ConfidenceLevel, float] = Field(
        default_factory=lambda: {
            ConfidenceLevel.HIGH: 1.0,
            ConfidenceLevel.MEDIUM: 0.8,
            ConfidenceLevel.LOW: 0.6,
            ConfidenceLevel.VERY_LOW: 0.4,
        }
    )
    unlabelled_confidence_weight: float = 0.5
    unknown_accuracy_fraction: float = 0.7
    min_assessment_weight: float = 0.1

    confidence_proxies: dict[ConfidenceLevel, float] = Field(
        default_factory=lambda: {
            ConfidenceLevel.HIGH: 0.9,
            ConfidenceLevel.MEDIUM: 0.7,
            ConfidenceLevel.LOW: 0.5,
            ConfidenceLevel.VERY_LOW: 0.3,
        }
    )
    # (minimum value, tier), checked in order
    confidence_tiers: tuple[tuple[float, ConfidenceLevel], ...] = (
        (0.8, ConfidenceLevel.HIGH),
        (0.6, ConfidenceLevel.MEDIUM),
        (0.4, ConfidenceLevel.LOW),
    )
    overall_confidence_weights: dict[str, float] = Field(
        default_factory=lambda: {"project": 0.6, "expertise": 0.4, "gating": 0.15}
    )
    completeness_points: dict[str, float] = Field(
        default_factory=lambda: {"project": 40, "expertise": 40, "gating": 20}
    )

    hybrid_critical_weight: float = 0.3
    strict_methods: bool = True
    missing_track_requires_review: bool = False

    review_interval_days: dict[ConfidenceLevel, int] = Field(
        default_factory=lambda: {
            ConfidenceLevel.VERY_LOW: 30,
            ConfidenceLevel.LOW: 60,
            ConfidenceLevel.MEDIUM: 90,
            ConfidenceLevel.HIGH: 90,
        }
    )
    expiry_days: int = 182

    # canonical delta -> magnitude, checked in order
    magnitude_thresholds: tuple[tuple[float, int], ...] = (
        (0.15, 5),
        (0.10, 4),
        (0.05, 3),
        (0.025, 2),
    )
    anomaly_window_days: int = 30

    @classmethod
    def for_scale(cls, scale_name: str, **overrides) -> "RatingPolicy":
        """Build the default policy for a named scale."""
        scale = get_scale(scale_name)
        return cls(
            scale=scale,
            discrepancy_thresholds=DISCREPANCY_THRESHOLDS[scale.name],
            gating_scores=GATING_SCORES[scale.name],
            **overrides,
        )

    @classmethod
    def from_settings(cls, settings) -> "RatingPolicy":
        return cls.for_scale(
            settings.rating_scale,
            hybrid_critical_weight=settings.hybrid_critical_weight,
            strict_methods=settings.strict_calculation_methods,
            missing_track_requires_review=settings.missing_track_requires_review,
            expiry_days=settings.rating_expiry_days,
        )

    def tier_for(self, value: float) -> ConfidenceLevel:
        """Convert a 0..1 confidence value to a tier."""
        for minimum, level in self.confidence_tiers:
            if value >= minimum:
                return level
        return ConfidenceLevel.VERY_LOW
