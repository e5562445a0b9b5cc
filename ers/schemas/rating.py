"""Rating engine records and rating API schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from ers.schemas.enums import (
    AgreementStatus,
    CalculationMethod,
    ChangeType,
    ConfidenceLevel,
    DiscrepancySeverity,
    GatingMode,
    Rating,
    RatingStatus,
    Track,
)


class ComponentScore(BaseModel):
    """One rated sub-criterion of an assessment (e.g. right_of_entry)."""

    model_config = {"frozen": True}

    component_id: str
    score: float
    label: str | None = None
    confidence: ConfidenceLevel | None = None
    evidence: str | None = None


class AssessmentInput(BaseModel):
    """A dated assessment of one employer on one track."""

    model_config = {"frozen": True}

    assessment_id: str
    track: Track
    assessment_date: date
    assessor_id: str | None = None
    method: str | None = None
    confidence_level: ConfidenceLevel | None = None
    assessor_accuracy: float | None = None  # percentage 0..100
    components: list[ComponentScore] = Field(default_factory=list)


class CalculationWeights(BaseModel):
    """Track balance weights. These do not have to sum to 1."""

    project: float = 0.6
    expertise: float = 0.4
    gating: float = 0.15

    @field_validator("project", "expertise", "gating")
    @classmethod
    def within_unit_interval(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("weights must be between 0 and 1")
        return v


class TrackScore(BaseModel):
    """Derived score for one track."""

    track: Track
    score: float | None = None
    rating: Rating = Rating.UNKNOWN
    confidence: ConfidenceLevel = ConfidenceLevel.VERY_LOW
    assessment_count: int = 0
    latest_assessment_date: date | None = None
    data_age_days: int | None = None
    reliability_weight: float | None = None


class GatingFactor(BaseModel):
    """Agreement status resolved to a fixed score on the active scale."""

    status: AgreementStatus = AgreementStatus.UNKNOWN
    score: float | None = None
    rating: Rating = Rating.UNKNOWN
    has_active_agreement: bool = False


class DiscrepancyResult(BaseModel):
    """Comparison of the project and expertise tracks."""

    score_difference: float | None = None
    rating_match: bool = False
    severity: DiscrepancySeverity = DiscrepancySeverity.NONE
    detected: bool = False
    requires_review: bool = False

    @property
    def level(self) -> int:
        return self.severity.level


class FinalRatingResult(BaseModel):
    """Output of one aggregation run, before persistence."""

    employer_id: str
    calculation_date: date
    final_score: float | None = None
    final_rating: Rating = Rating.UNKNOWN
    project: TrackScore
    expertise: TrackScore
    gating: GatingFactor
    weights: CalculationWeights
    method: CalculationMethod
    gating_mode: GatingMode
    discrepancy: DiscrepancyResult
    overall_confidence: ConfidenceLevel
    data_completeness: float
    review_required: bool = False
    review_reason: str | None = None
    reconciliation_method: str | None = None
    next_review_date: date | None = None
    expiry_date: date | None = None
    scale: str
    policy_version: str


# API schemas


class CalculateRatingRequest(BaseModel):
    """POST /v1/employers/{id}/ratings/calculate request."""

    calculation_date: date | None = None
    weights: CalculationWeights | None = None
    method: str | None = None
    gating_mode: GatingMode | None = None  # settings.default_gating_mode when omitted
    force_refresh: bool = False


class TrackScoreResponse(BaseModel):
    score: float | None
    rating: Rating
    confidence: ConfidenceLevel | None
    assessment_count: int
    data_age_days: int | None


class DiscrepancyResponse(BaseModel):
    score_difference: float | None
    rating_match: bool
    severity: DiscrepancySeverity
    requires_review: bool


class FinalRatingResponse(BaseModel):
    """Persisted final rating."""

    rating_id: str
    employer_id: str
    rating_date: date
    version: int
    final_score: float | None
    final_rating: Rating
    project: TrackScoreResponse
    expertise: TrackScoreResponse
    gating_status: AgreementStatus
    gating_score: float | None
    weights: CalculationWeights
    calculation_method: str
    gating_mode: str
    discrepancy: DiscrepancyResponse
    overall_confidence: ConfidenceLevel
    data_completeness: float
    rating_status: RatingStatus
    review_required: bool
    review_reason: str | None = None
    next_review_date: date | None = None
    expiry_date: date | None = None
    scale: str
    created_at: datetime


class RatingHistoryResponse(BaseModel):
    entry_id: str
    employer_id: str
    rating_id: str
    rating_date: date
    previous_rating: Rating | None
    new_rating: Rating
    previous_score: float | None
    new_score: float | None
    change_type: ChangeType
    score_change: float | None
    change_magnitude: int | None
    significant_change: bool
    days_since_previous: int | None
    trend_consistent: bool
    anomaly_detected: bool
    anomaly_reason: str | None = None
    created_at: datetime


class BatchRecalculateRequest(BaseModel):
    """POST /v1/ratings/batch request. Either employer_ids or a role filter."""

    employer_ids: list[str] | None = None
    employer_role: str | None = None
    force_refresh: bool = False
    limit: int = Field(default=100, ge=1, le=1000)
    calculation_date: date | None = None
    method: str | None = None


class BatchRecalculateResponse(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


class QualityMetricsResponse(BaseModel):
    metric_date: date
    total_employers_rated: int
    ratings_by_category: dict[str, int]
    average_confidence_score: float | None
    data_completeness_average: float | None
    discrepancy_rate: float | None
    average_discrepancy_level: float | None
    pending_discrepancies: int
    resolved_discrepancies: int
    disputes_filed: int
    disputes_resolved: int
    resolution_success_rate: float | None
    average_resolution_days: float | None
