"""Initial schema - employers, assessments, weight profiles, ratings, history, disputes.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "employers",
        sa.Column("employer_id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="all"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "agreement_statuses",
        sa.Column("status_id", sa.UUID(), primary_key=True),
        sa.Column("employer_id", sa.UUID(), sa.ForeignKey("employers.employer_id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("source", sa.Text(), nullable=True),
    )
    op.create_index("ix_agreement_statuses_employer_id", "agreement_statuses", ["employer_id"])

    op.create_table(
        "track_assessments",
        sa.Column("assessment_id", sa.UUID(), primary_key=True),
        sa.Column("employer_id", sa.UUID(), sa.ForeignKey("employers.employer_id"), nullable=False),
        sa.Column("track", sa.String(20), nullable=False),
        sa.Column("assessment_date", sa.Date(), nullable=False),
        sa.Column("assessor_id", sa.Text(), nullable=True),
        sa.Column("method", sa.String(50), nullable=True),
        sa.Column("confidence_level", sa.String(20), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("track IN ('project', 'expertise')", name="ck_track_assessments_track"),
    )
    op.create_index("ix_track_assessments_employer_id", "track_assessments", ["employer_id"])

    op.create_table(
        "assessment_components",
        sa.Column("component_pk", sa.UUID(), primary_key=True),
        sa.Column(
            "assessment_id",
            sa.UUID(),
            sa.ForeignKey("track_assessments.assessment_id"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("component_id", sa.Text(), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("confidence", sa.String(20), nullable=True),
        sa.Column("evidence", sa.Text(), nullable=True),
    )

    op.create_table(
        "assessor_reliability",
        sa.Column("reliability_id", sa.UUID(), primary_key=True),
        sa.Column("assessor_id", sa.Text(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("accuracy_percentage", sa.Float(), nullable=False),
        sa.Column("assessments_count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_assessor_reliability_assessor_id", "assessor_reliability", ["assessor_id"])

    op.create_table(
        "weight_profiles",
        sa.Column("profile_id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("track", sa.String(20), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="all"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("weights", postgresql.JSONB(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("name", "track", "role", "version", name="uq_weight_profiles_version"),
    )
    # Exactly one default per (track, role)
    op.create_index(
        "uq_weight_profiles_default",
        "weight_profiles",
        ["track", "role"],
        unique=True,
        postgresql_where=sa.text("is_default AND is_active"),
    )

    op.create_table(
        "final_ratings",
        sa.Column("rating_id", sa.UUID(), primary_key=True),
        sa.Column("employer_id", sa.UUID(), sa.ForeignKey("employers.employer_id"), nullable=False),
        sa.Column("rating_date", sa.Date(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("final_score", sa.Float(), nullable=True),
        sa.Column("final_rating", sa.String(20), nullable=False),
        sa.Column("project_score", sa.Float(), nullable=True),
        sa.Column("project_rating", sa.String(20), nullable=False),
        sa.Column("project_confidence", sa.String(20), nullable=False),
        sa.Column("project_assessment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("project_data_age_days", sa.Integer(), nullable=True),
        sa.Column("expertise_score", sa.Float(), nullable=True),
        sa.Column("expertise_rating", sa.String(20), nullable=False),
        sa.Column("expertise_confidence", sa.String(20), nullable=False),
        sa.Column("expertise_assessment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expertise_data_age_days", sa.Integer(), nullable=True),
        sa.Column("gating_status", sa.String(20), nullable=False),
        sa.Column("gating_score", sa.Float(), nullable=True),
        sa.Column("weights", postgresql.JSONB(), nullable=False),
        sa.Column("calculation_method", sa.String(30), nullable=False),
        sa.Column("gating_mode", sa.String(20), nullable=False),
        sa.Column("score_difference", sa.Float(), nullable=True),
        sa.Column("rating_match", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discrepancy_severity", sa.String(20), nullable=False),
        sa.Column("discrepancy_detected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discrepancy_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reconciliation_method", sa.String(50), nullable=True),
        sa.Column("overall_confidence", sa.String(20), nullable=False),
        sa.Column("data_completeness", sa.Float(), nullable=False),
        sa.Column("rating_status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("review_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("review_reason", sa.Text(), nullable=True),
        sa.Column("next_review_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("scale", sa.String(30), nullable=False),
        sa.Column("policy_version", sa.String(20), nullable=False),
        sa.Column("inputs_hash", sa.Text(), nullable=True),
        sa.Column("source_dispute_id", sa.UUID(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("employer_id", "version", name="uq_final_ratings_employer_version"),
    )
    op.create_index("ix_final_ratings_employer_id", "final_ratings", ["employer_id"])
    op.create_index(
        "ix_final_ratings_lookup",
        "final_ratings",
        ["employer_id", "rating_date", "inputs_hash"],
    )

    op.create_table(
        "rating_comparison_log",
        sa.Column("comparison_id", sa.UUID(), primary_key=True),
        sa.Column("rating_id", sa.UUID(), sa.ForeignKey("final_ratings.rating_id"), nullable=False),
        sa.Column("employer_id", sa.UUID(), nullable=False),
        sa.Column("comparison_date", sa.Date(), nullable=False),
        sa.Column("project_score", sa.Float(), nullable=True),
        sa.Column("project_rating", sa.String(20), nullable=False),
        sa.Column("expertise_score", sa.Float(), nullable=True),
        sa.Column("expertise_rating", sa.String(20), nullable=False),
        sa.Column("score_difference", sa.Float(), nullable=True),
        sa.Column("rating_match", sa.Boolean(), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("requires_review", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_rating_comparison_log_employer_id", "rating_comparison_log", ["employer_id"])

    op.create_table(
        "rating_history",
        sa.Column("entry_id", sa.UUID(), primary_key=True),
        sa.Column("employer_id", sa.UUID(), nullable=False),
        sa.Column("rating_id", sa.UUID(), sa.ForeignKey("final_ratings.rating_id"), nullable=False),
        sa.Column("rating_date", sa.Date(), nullable=False),
        sa.Column("previous_rating", sa.String(20), nullable=True),
        sa.Column("new_rating", sa.String(20), nullable=False),
        sa.Column("previous_score", sa.Float(), nullable=True),
        sa.Column("new_score", sa.Float(), nullable=True),
        sa.Column("change_type", sa.String(20), nullable=False),
        sa.Column("score_change", sa.Float(), nullable=True),
        sa.Column("change_magnitude", sa.Integer(), nullable=True),
        sa.Column("significant_change", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("days_since_previous", sa.Integer(), nullable=True),
        sa.Column("trend_consistent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("anomaly_detected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("anomaly_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_rating_history_employer_id", "rating_history", ["employer_id"])

    op.create_table(
        "rating_disputes",
        sa.Column("dispute_id", sa.UUID(), primary_key=True),
        sa.Column("rating_id", sa.UUID(), sa.ForeignKey("final_ratings.rating_id"), nullable=False),
        sa.Column("employer_id", sa.UUID(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("filed_by", sa.Text(), nullable=True),
        sa.Column("filed_on", sa.Date(), nullable=False),
        sa.Column("proposed_rating", sa.String(20), nullable=True),
        sa.Column("proposed_score", sa.Float(), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("reviewer_id", sa.Text(), nullable=True),
        sa.Column("review_started_on", sa.Date(), nullable=True),
        sa.Column("review_deadline", sa.Date(), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_rating", sa.String(20), nullable=True),
        sa.Column("resolved_score", sa.Float(), nullable=True),
        sa.Column("closed_on", sa.Date(), nullable=True),
        sa.Column("new_rating_id", sa.UUID(), nullable=True),
        sa.Column("appeal_status", sa.String(20), nullable=False, server_default="none"),
        sa.Column("appeal_reason", sa.Text(), nullable=True),
        sa.Column("appeal_filed_on", sa.Date(), nullable=True),
        sa.Column("appeal_decision_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_rating_disputes_rating_id", "rating_disputes", ["rating_id"])

    op.create_table(
        "rating_quality_metrics",
        sa.Column("metric_date", sa.Date(), primary_key=True),
        sa.Column("total_employers_rated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ratings_by_category", postgresql.JSONB(), nullable=False),
        sa.Column("average_confidence_score", sa.Float(), nullable=True),
        sa.Column("data_completeness_average", sa.Float(), nullable=True),
        sa.Column("discrepancy_rate", sa.Float(), nullable=True),
        sa.Column("average_discrepancy_level", sa.Float(), nullable=True),
        sa.Column("pending_discrepancies", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("resolved_discrepancies", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("disputes_filed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("disputes_resolved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("resolution_success_rate", sa.Float(), nullable=True),
        sa.Column("average_resolution_days", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("rating_quality_metrics")
    op.drop_index("ix_rating_disputes_rating_id", table_name="rating_disputes")
    op.drop_table("rating_disputes")
    op.drop_index("ix_rating_history_employer_id", table_name="rating_history")
    op.drop_table("rating_history")
    op.drop_index("ix_rating_comparison_log_employer_id", table_name="rating_comparison_log")
    op.drop_table("rating_comparison_log")
    op.drop_index("ix_final_ratings_lookup", table_name="final_ratings")
    op.drop_index("ix_final_ratings_employer_id", table_name="final_ratings")
    op.drop_table("final_ratings")
    op.drop_index("uq_weight_profiles_default", table_name="weight_profiles")
    op.drop_table("weight_profiles")
    op.drop_index("ix_assessor_reliability_assessor_id", table_name="assessor_reliability")
    op.drop_table("assessor_reliability")
    op.drop_table("assessment_components")
    op.drop_index("ix_track_assessments_employer_id", table_name="track_assessments")
    op.drop_table("track_assessments")
    op.drop_index("ix_agreement_statuses_employer_id", table_name="agreement_statuses")
    op.drop_table("agreement_statuses")
    op.drop_table("employers")
