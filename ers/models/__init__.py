"""Database models."""

from ers.models.employer import AgreementStatusRecord, Employer
from ers.models.assessment import AssessmentComponent, AssessorReliability, TrackAssessment
from ers.models.weight_profile import WeightProfileRecord
from ers.models.rating import FinalRating, RatingComparisonLog, RatingHistory
from ers.models.dispute import RatingDispute
from ers.models.quality import RatingQualityMetric

__all__ = [
    "Employer",
    "AgreementStatusRecord",
    "TrackAssessment",
    "AssessmentComponent",
    "AssessorReliability",
    "WeightProfileRecord",
    "FinalRating",
    "RatingComparisonLog",
    "RatingHistory",
    "RatingDispute",
    "RatingQualityMetric",
]
