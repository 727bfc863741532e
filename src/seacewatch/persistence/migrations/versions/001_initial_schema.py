"""Initial schema

Revision ID: 001
Revises:
Create Date: 2025-10-01 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create initial database schema."""

    # Processes table
    op.create_table(
        "processes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("process_id", sa.String(length=200), nullable=False),
        sa.Column("entity_name", sa.String(length=500), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("published_text", sa.String(length=32), nullable=True),
        sa.Column("nomenclature", sa.String(length=200), nullable=True),
        sa.Column("restarted_from", sa.String(length=200), nullable=True),
        sa.Column("contract_object", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("snip_code", sa.String(length=100), nullable=True),
        sa.Column("reference_amount", sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column("currency", sa.String(length=50), nullable=False, server_default="Soles"),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("province", sa.String(length=200), nullable=True),
        sa.Column("district", sa.String(length=200), nullable=True),
        sa.Column("process_type", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="Published"),
        sa.Column("source_url", sa.String(length=2000), nullable=True),
        sa.Column("page_number", sa.Integer(), nullable=True),
        sa.Column("scraped_at", sa.DateTime(), nullable=False),
        sa.Column("schema_version", sa.String(length=10), nullable=False, server_default="3"),
        sa.Column("last_job_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_processes_process_id", "processes", ["process_id"], unique=True)
    op.create_index("ix_processes_published_at", "processes", ["published_at"])
    op.create_index("ix_processes_contract_object", "processes", ["contract_object"])
    op.create_index("ix_processes_status", "processes", ["status"])
    op.create_index("ix_processes_last_job_id", "processes", ["last_job_id"])
    op.create_index("ix_process_entity_published", "processes", ["entity_name", "published_at"])

    # Extraction jobs table
    op.create_table(
        "extraction_jobs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("params", sa.JSON(), nullable=False),
        sa.Column("max_processes", sa.Integer(), nullable=True),
        sa.Column("inserted_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("errored_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skipped_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rows_seen", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pages_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inserted_ids", sa.JSON(), nullable=False),
        sa.Column("updated_ids", sa.JSON(), nullable=False),
        sa.Column("error_details", sa.JSON(), nullable=False),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("export_paths", sa.JSON(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("error_traceback", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_extraction_jobs_status", "extraction_jobs", ["status"])
    op.create_index("ix_extraction_jobs_created_at", "extraction_jobs", ["created_at"])

    # Run log table
    op.create_table(
        "run_log_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(length=36), nullable=False),
        sa.Column("operation_type", sa.String(length=50), nullable=False, server_default="scraping"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="running"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("process_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inserted_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("search_params", sa.JSON(), nullable=True),
        sa.Column("max_processes", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["job_id"], ["extraction_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_run_log_entries_job_id", "run_log_entries", ["job_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("run_log_entries")
    op.drop_table("extraction_jobs")
    op.drop_table("processes")
