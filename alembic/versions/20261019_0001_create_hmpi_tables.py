"""create analysis_runs, predictions and reports tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "analysis_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("input_parameters", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("results", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("samples", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("scoring_status", sa.String(length=32), nullable=False),
        sa.Column("retry_of", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["retry_of"], ["analysis_runs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_analysis_runs_owner_id", "analysis_runs", ["owner_id"], unique=False)
    op.create_index(
        "ix_analysis_runs_owner_created_at",
        "analysis_runs",
        ["owner_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "predictions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("analysis_run_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sample_id", sa.String(length=128), nullable=False),
        sa.Column("hmpi_score", sa.Float(), nullable=False),
        sa.Column("risk_category", sa.String(length=16), nullable=False),
        sa.Column("metal_concentrations", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("sample_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["analysis_run_id"], ["analysis_runs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_predictions_owner_id", "predictions", ["owner_id"], unique=False)
    op.create_index(
        "ix_predictions_owner_created_at",
        "predictions",
        ["owner_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_predictions_owner_sample_date",
        "predictions",
        ["owner_id", "sample_date"],
        unique=False,
    )
    op.create_index("ix_predictions_analysis_run_id", "predictions", ["analysis_run_id"], unique=False)

    op.create_table(
        "reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("format", sa.String(length=16), nullable=False),
        sa.Column("config", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("status_message", sa.Text(), nullable=True),
        sa.Column("samples_count", sa.Integer(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("content_type", sa.String(length=128), nullable=True),
        sa.Column("download_url", sa.String(length=255), nullable=True),
        sa.Column("artifact", sa.LargeBinary(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reports_owner_id", "reports", ["owner_id"], unique=False)
    op.create_index("ix_reports_owner_created_at", "reports", ["owner_id", "created_at"], unique=False)
    op.create_index("ix_reports_status", "reports", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_reports_status", table_name="reports")
    op.drop_index("ix_reports_owner_created_at", table_name="reports")
    op.drop_index("ix_reports_owner_id", table_name="reports")
    op.drop_table("reports")

    op.drop_index("ix_predictions_analysis_run_id", table_name="predictions")
    op.drop_index("ix_predictions_owner_sample_date", table_name="predictions")
    op.drop_index("ix_predictions_owner_created_at", table_name="predictions")
    op.drop_index("ix_predictions_owner_id", table_name="predictions")
    op.drop_table("predictions")

    op.drop_index("ix_analysis_runs_owner_created_at", table_name="analysis_runs")
    op.drop_index("ix_analysis_runs_owner_id", table_name="analysis_runs")
    op.drop_table("analysis_runs")
