"""
Repository pattern for database operations.

Provides thin abstractions over the three tables: processes, extraction
jobs and the run log. Repositories never commit; the caller's session
scope decides the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Sequence
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from seacewatch.core.config.models import JobStatus

from .models import ExtractionJob, Process, RunLogEntry, utcnow

if TYPE_CHECKING:
    from seacewatch.core.normalize.record import ProcessRecord


class InvalidJobTransition(Exception):
    """A job or run log entry was moved out of order."""


class JobNotFound(LookupError):
    """No job with the given id."""


_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.RUNNING, JobStatus.FAILED},
    JobStatus.RUNNING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Process Repository
# =============================================================================


class ProcessRepository:
    """Repository for Process rows, keyed by process_id."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_process_id(self, process_id: str) -> Process | None:
        stmt = select(Process).where(Process.process_id == process_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def add(self, record: ProcessRecord, job_id: str | None = None) -> Process:
        """Insert a new row; flushes so constraint errors surface here."""
        process = Process(process_id=record.process_id, last_job_id=job_id)
        self._assign(process, record)
        self.session.add(process)
        self.session.flush()
        return process

    def apply(self, process: Process, record: ProcessRecord, job_id: str | None = None) -> Process:
        """Overwrite every mutable field with the record's values."""
        self._assign(process, record)
        process.last_job_id = job_id
        self.session.flush()
        return process

    def _assign(self, process: Process, record: ProcessRecord) -> None:
        for name, value in record.mutable_fields().items():
            if isinstance(value, datetime):
                value = _naive_utc(value)
            setattr(process, name, value)

    def count(self) -> int:
        return self.session.execute(select(func.count(Process.id))).scalar_one()

    def count_by_contract_object(self) -> dict[str, int]:
        stmt = select(Process.contract_object, func.count(Process.id)).group_by(Process.contract_object)
        return {obj or "unknown": count for obj, count in self.session.execute(stmt).all()}

    def list_recent(
        self,
        limit: int = 50,
        contract_object: str | None = None,
    ) -> Sequence[Process]:
        """Most recently published processes first."""
        stmt = select(Process)
        if contract_object:
            stmt = stmt.where(Process.contract_object == contract_object)
        stmt = stmt.order_by(Process.published_at.desc().nullslast(), Process.id.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()


# =============================================================================
# Job Repository
# =============================================================================


class JobRepository:
    """Repository for extraction jobs and their state machine."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        params: dict[str, Any],
        max_processes: int | None = None,
        job_id: str | None = None,
    ) -> ExtractionJob:
        job = ExtractionJob(
            id=job_id or str(uuid4()),
            status=JobStatus.PENDING.value,
            params=params,
            max_processes=max_processes,
            inserted_ids=[],
            updated_ids=[],
            error_details=[],
            warnings=[],
            export_paths=[],
        )
        self.session.add(job)
        self.session.flush()
        return job

    def get(self, job_id: str) -> ExtractionJob | None:
        return self.session.get(ExtractionJob, job_id)

    def require(self, job_id: str) -> ExtractionJob:
        job = self.get(job_id)
        if job is None:
            raise JobNotFound(f"Job not found: {job_id}")
        return job

    def transition(self, job: ExtractionJob, status: JobStatus) -> None:
        """Move `job` to `status`.

        Raises:
            InvalidJobTransition: `status` is not reachable from the current one
        """
        current = JobStatus(job.status)
        if status not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidJobTransition(
                f"Job {job.id} cannot go from {current.value} to {status.value}"
            )
        job.status = status.value

    def mark_running(self, job_id: str) -> ExtractionJob:
        job = self.require(job_id)
        self.transition(job, JobStatus.RUNNING)
        job.started_at = utcnow()
        self.session.flush()
        return job

    def record_progress(
        self,
        job_id: str,
        *,
        inserted_ids: list[str],
        updated_ids: list[str],
        error_details: list[dict[str, Any]],
        skipped: int = 0,
        rows_seen: int = 0,
        pages_processed: int = 0,
        warnings: list[str] | None = None,
    ) -> ExtractionJob:
        """Replace the job's counters with the caller's running totals.

        Lists are copied so the JSON columns register the change.
        """
        job = self.require(job_id)
        if job.status != JobStatus.RUNNING.value:
            raise InvalidJobTransition(f"Cannot record progress on a {job.status} job")

        job.inserted_ids = list(inserted_ids)
        job.updated_ids = list(updated_ids)
        job.error_details = [dict(d) for d in error_details]
        job.inserted_count = len(inserted_ids)
        job.updated_count = len(updated_ids)
        job.errored_count = len(error_details)
        job.skipped_count = skipped
        job.rows_seen = rows_seen
        job.pages_processed = pages_processed
        if warnings is not None:
            job.warnings = list(warnings)
        self.session.flush()
        return job

    def finish(
        self,
        job_id: str,
        status: JobStatus,
        message: str,
        duration_ms: int | None = None,
        error_traceback: str | None = None,
        export_paths: list[str] | None = None,
    ) -> ExtractionJob:
        """Put the job in a terminal state."""
        job = self.require(job_id)
        if not status.is_terminal:
            raise InvalidJobTransition(f"{status.value} is not a terminal status")
        self.transition(job, status)
        job.message = message
        job.finished_at = utcnow()
        job.duration_ms = duration_ms
        job.error_traceback = error_traceback
        if export_paths is not None:
            job.export_paths = list(export_paths)
        self.session.flush()
        return job

    def list_jobs(
        self,
        status: JobStatus | None = None,
        limit: int = 20,
    ) -> Sequence[ExtractionJob]:
        """Jobs, newest first."""
        stmt = select(ExtractionJob)
        if status:
            stmt = stmt.where(ExtractionJob.status == status.value)
        stmt = stmt.order_by(ExtractionJob.created_at.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()

    def stats(self) -> dict[str, Any]:
        """Aggregate counts across all jobs."""
        by_status = {s.value: 0 for s in JobStatus}
        rows = self.session.execute(
            select(ExtractionJob.status, func.count(ExtractionJob.id)).group_by(ExtractionJob.status)
        ).all()
        for status, count in rows:
            by_status[status] = count

        totals = self.session.execute(
            select(
                func.coalesce(func.sum(ExtractionJob.inserted_count), 0),
                func.coalesce(func.sum(ExtractionJob.updated_count), 0),
                func.coalesce(func.sum(ExtractionJob.errored_count), 0),
            )
        ).one()

        avg_duration = self.session.execute(
            select(func.avg(ExtractionJob.duration_ms)).where(
                ExtractionJob.status == JobStatus.COMPLETED.value
            )
        ).scalar_one()

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "inserted": int(totals[0]),
            "updated": int(totals[1]),
            "errored": int(totals[2]),
            "avg_completed_duration_ms": round(avg_duration) if avg_duration is not None else None,
        }


# =============================================================================
# Run Log Repository
# =============================================================================


class RunLogRepository:
    """Repository for the run log. Entries are opened once and closed once."""

    def __init__(self, session: Session):
        self.session = session

    def open(
        self,
        job_id: str,
        search_params: dict[str, Any] | None = None,
        max_processes: int | None = None,
        operation_type: str = "scraping",
    ) -> RunLogEntry:
        entry = RunLogEntry(
            job_id=job_id,
            operation_type=operation_type,
            status=JobStatus.RUNNING.value,
            search_params=search_params,
            max_processes=max_processes,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def close(
        self,
        entry_id: int,
        *,
        status: JobStatus,
        message: str,
        process_count: int = 0,
        inserted_count: int = 0,
        updated_count: int = 0,
        error_count: int = 0,
        duration_ms: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> RunLogEntry:
        """Record the outcome of a run.

        Raises:
            InvalidJobTransition: The entry was already closed
        """
        entry = self.session.get(RunLogEntry, entry_id)
        if entry is None:
            raise LookupError(f"Run log entry not found: {entry_id}")
        if not entry.is_open:
            raise InvalidJobTransition(f"Run log entry {entry_id} is already closed")

        entry.status = status.value
        entry.message = message
        entry.process_count = process_count
        entry.inserted_count = inserted_count
        entry.updated_count = updated_count
        entry.error_count = error_count
        entry.duration_ms = duration_ms
        entry.details = details
        entry.finished_at = utcnow()
        self.session.flush()
        return entry

    def for_job(self, job_id: str) -> Sequence[RunLogEntry]:
        stmt = select(RunLogEntry).where(RunLogEntry.job_id == job_id).order_by(RunLogEntry.id)
        return self.session.execute(stmt).scalars().all()

    def get_recent(self, limit: int = 20) -> Sequence[RunLogEntry]:
        stmt = select(RunLogEntry).order_by(RunLogEntry.created_at.desc(), RunLogEntry.id.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()
