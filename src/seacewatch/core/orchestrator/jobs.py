"""
Job orchestrator.

Submits extraction jobs as background asyncio tasks and answers questions
about them from the database. Jobs run to completion or failure; there is
no cancel.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from seacewatch.core.config.models import AppConfig, JobStatus
from seacewatch.core.config.params import ExtractionParams
from seacewatch.persistence.db import session_scope
from seacewatch.persistence.models import ExtractionJob, utcnow
from seacewatch.persistence.repo import JobRepository, RunLogRepository

from .runner import ExtractionRun, PageFactory

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from seacewatch.core.fetch.retries import RetryConfig


logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class JobOrchestrator:
    """Create, run and track extraction jobs.

    Args:
        config: Application configuration
        session_factory: Session factory; the global one when omitted
        page_factory: Builds the search page for a job (Playwright by default)
        advance_retry: Retry policy for paginator clicks
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        session_factory: sessionmaker[Session] | None = None,
        page_factory: PageFactory | None = None,
        advance_retry: RetryConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.session_factory = session_factory
        self.page_factory = page_factory
        self.advance_retry = advance_retry
        self._semaphore = asyncio.Semaphore(self.config.orchestrator.max_concurrent_jobs)
        self._tasks: dict[str, asyncio.Task[None]] = {}

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit(self, params: ExtractionParams | dict[str, Any] | None = None) -> str:
        """Persist a pending job, start it in the background and return its id.

        Raises:
            pydantic.ValidationError: `params` is not a valid parameter set
        """
        if params is None:
            params = ExtractionParams()
        elif isinstance(params, dict):
            params = ExtractionParams.model_validate(params)

        with session_scope(self.session_factory) as session:
            job = JobRepository(session).create(
                params.to_payload(),
                max_processes=params.max_processes,
            )
            job_id = job.id

        logger.info(f"Job {job_id} submitted")
        task = asyncio.create_task(self._run(job_id, params), name=f"extraction-{job_id[:8]}")
        self._tasks[job_id] = task
        return job_id

    async def _run(self, job_id: str, params: ExtractionParams) -> None:
        async with self._semaphore:
            run = ExtractionRun(
                job_id,
                params,
                self.config,
                session_factory=self.session_factory,
                page_factory=self.page_factory,
                advance_retry=self.advance_retry,
            )
            try:
                await run.execute()
            except Exception as e:
                logger.exception(f"Job {job_id} could not start")
                self._fail_unstarted(job_id, e)

    def _fail_unstarted(self, job_id: str, error: Exception) -> None:
        try:
            with session_scope(self.session_factory) as session:
                jobs = JobRepository(session)
                job = jobs.require(job_id)
                if not JobStatus(job.status).is_terminal:
                    jobs.finish(job_id, JobStatus.FAILED, f"Extraction failed: {error}")
        except Exception:
            logger.exception(f"Could not mark job {job_id} as failed")

    async def wait(self, job_id: str) -> dict[str, Any]:
        """Wait for a job submitted by this orchestrator, then return its status."""
        task = self._tasks.get(job_id)
        if task is not None:
            await task
            self._tasks.pop(job_id, None)
        return self.get_status(job_id)

    async def wait_all(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks)
        self._tasks.clear()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_status(self, job_id: str) -> dict[str, Any]:
        """`{id, status, counters, duration_ms, message}` for one job.

        Raises:
            JobNotFound: Unknown job id
        """
        with session_scope(self.session_factory) as session:
            job = JobRepository(session).require(job_id)
            return self._status_view(job)

    def get_progress(self, job_id: str) -> dict[str, Any]:
        with session_scope(self.session_factory) as session:
            job = JobRepository(session).require(job_id)
            return {
                "id": job.id,
                "status": job.status,
                "pages_processed": job.pages_processed,
                "rows_seen": job.rows_seen,
                "inserted": job.inserted_count,
                "updated": job.updated_count,
                "errored": job.errored_count,
                "skipped": job.skipped_count,
                "max_processes": job.max_processes,
            }

    def get_details(self, job_id: str) -> dict[str, Any]:
        """Everything recorded about a job, including per-record outcomes."""
        with session_scope(self.session_factory) as session:
            job = JobRepository(session).require(job_id)
            entries = RunLogRepository(session).for_job(job_id)
            details = self._status_view(job)
            details.update({
                "params": dict(job.params),
                "max_processes": job.max_processes,
                "skipped": job.skipped_count,
                "rows_seen": job.rows_seen,
                "pages_processed": job.pages_processed,
                "inserted_ids": list(job.inserted_ids),
                "updated_ids": list(job.updated_ids),
                "errored_ids": job.errored_ids,
                "error_details": [dict(d) for d in job.error_details],
                "warnings": list(job.warnings),
                "export_paths": list(job.export_paths),
                "created_at": _iso(job.created_at),
                "started_at": _iso(job.started_at),
                "finished_at": _iso(job.finished_at),
                "error_traceback": job.error_traceback,
                "log_entries": [
                    {
                        "id": e.id,
                        "operation_type": e.operation_type,
                        "status": e.status,
                        "message": e.message,
                        "process_count": e.process_count,
                        "duration_ms": e.duration_ms,
                        "created_at": _iso(e.created_at),
                        "finished_at": _iso(e.finished_at),
                    }
                    for e in entries
                ],
            })
            return details

    def list_jobs(self, status: JobStatus | str | None = None, limit: int = 20) -> list[dict[str, Any]]:
        if isinstance(status, str):
            status = JobStatus(status)
        with session_scope(self.session_factory) as session:
            jobs = JobRepository(session).list_jobs(status=status, limit=limit)
            return [
                {**self._status_view(job), "created_at": _iso(job.created_at)}
                for job in jobs
            ]

    def stats(self) -> dict[str, Any]:
        with session_scope(self.session_factory) as session:
            return JobRepository(session).stats()

    @staticmethod
    def _status_view(job: ExtractionJob) -> dict[str, Any]:
        duration_ms = job.duration_ms
        if duration_ms is None and job.started_at is not None:
            duration_ms = int((utcnow() - job.started_at).total_seconds() * 1000)
        return {
            "id": job.id,
            "status": job.status,
            "counters": {
                "inserted": job.inserted_count,
                "updated": job.updated_count,
                "errored": job.errored_count,
            },
            "duration_ms": duration_ms,
            "message": job.message,
        }
