"""
SQLAlchemy ORM models for SeaceWatch.

Defines the database schema:
- Processes: normalized SEACE procurement processes, one row per process_id
- ExtractionJobs: lifecycle, counters and per-record outcomes of each run
- RunLogEntries: append-only audit entry per job
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
        list[Any]: JSON,
    }


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


# =============================================================================
# Process Model
# =============================================================================


class Process(Base, TimestampMixin):
    """A procurement process as listed in the SEACE public search."""

    __tablename__ = "processes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    process_id: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)

    entity_name: Mapped[str] = mapped_column(String(500), nullable=False)
    # Portal wall-clock time (America/Lima), stored naive
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    published_text: Mapped[str | None] = mapped_column(String(32), nullable=True)
    nomenclature: Mapped[str | None] = mapped_column(String(200), nullable=True)
    restarted_from: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contract_object: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    snip_code: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reference_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(50), nullable=False, default="Soles", server_default="Soles")

    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    province: Mapped[str | None] = mapped_column(String(200), nullable=True)
    district: Mapped[str | None] = mapped_column(String(200), nullable=True)
    process_type: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="Published",
        server_default="Published",
        index=True,
    )
    source_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scraped_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    schema_version: Mapped[str] = mapped_column(String(10), nullable=False, default="3", server_default="3")

    last_job_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    __table_args__ = (
        Index("ix_process_entity_published", "entity_name", "published_at"),
    )

    def __repr__(self) -> str:
        return f"<Process(id={self.id}, process_id='{self.process_id}')>"


# =============================================================================
# Extraction Job Model
# =============================================================================


class ExtractionJob(Base):
    """One extraction run, from submission to a terminal state."""

    __tablename__ = "extraction_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)

    params: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    max_processes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Counters
    inserted_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    errored_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rows_seen: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pages_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Per-record outcomes
    inserted_ids: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    updated_ids: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    error_details: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    warnings: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    export_paths: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)

    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_traceback: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timing
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    log_entries: Mapped[list[RunLogEntry]] = relationship(
        "RunLogEntry",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="RunLogEntry.id",
    )

    @property
    def errored_ids(self) -> list[str]:
        return [d.get("process_id") for d in self.error_details if d.get("process_id")]

    def __repr__(self) -> str:
        return f"<ExtractionJob(id='{self.id}', status='{self.status}')>"


# =============================================================================
# Run Log Model
# =============================================================================


class RunLogEntry(Base):
    """Audit entry: opened when a job starts, closed once when it ends."""

    __tablename__ = "run_log_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("extraction_jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    operation_type: Mapped[str] = mapped_column(String(50), nullable=False, default="scraping")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="running")
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    process_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inserted_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    search_params: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    max_processes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    job: Mapped[ExtractionJob] = relationship("ExtractionJob", back_populates="log_entries")

    @property
    def is_open(self) -> bool:
        return self.finished_at is None

    def __repr__(self) -> str:
        return f"<RunLogEntry(id={self.id}, job_id='{self.job_id}', status='{self.status}')>"
