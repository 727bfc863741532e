"""
Extraction run.

Coordinates one job end to end: open the search page, configure the form,
extract page by page, normalize, export, upsert, and record the outcome on
the job row and the run log.
"""

from __future__ import annotations

import time
import traceback
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from seacewatch.core.config.models import JobStatus
from seacewatch.core.export.sink import ExportSink
from seacewatch.core.extract.paginated import PaginatedExtractor
from seacewatch.core.logging import LoggerLike, get_contextual_logger
from seacewatch.core.normalize.record import ProcessRecord, RecordNormalizer
from seacewatch.core.portals.form_driver import FormDriver
from seacewatch.core.portals.seace import SeaceSearchPage
from seacewatch.persistence.db import session_scope
from seacewatch.persistence.repo import JobRepository, RunLogRepository
from seacewatch.persistence.store import IngestionStore

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from seacewatch.core.config.models import AppConfig
    from seacewatch.core.config.params import ExtractionParams
    from seacewatch.core.fetch.retries import RetryConfig
    from seacewatch.core.portals.base import RawRow, SearchPage


PageFactory = Callable[["AppConfig", LoggerLike], "SearchPage"]


def default_page_factory(config: AppConfig, log: LoggerLike) -> SearchPage:
    return SeaceSearchPage.from_config(config, log=log)


@dataclass
class RunCounters:
    """Running totals for one job."""

    inserted_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    error_details: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0
    processed: int = 0
    rows_seen: int = 0
    pages_processed: int = 0
    warnings: list[str] = field(default_factory=list)
    export_paths: list[str] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return len(self.inserted_ids)

    @property
    def updated(self) -> int:
        return len(self.updated_ids)

    @property
    def errored(self) -> int:
        return len(self.error_details)

    def summary(self) -> str:
        return (
            f"Scraping completed: {self.inserted} new, {self.updated} updated, "
            f"{self.errored} errors (total processed {self.processed})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "updated": self.updated,
            "errored": self.errored,
            "skipped": self.skipped,
            "processed": self.processed,
            "rows_seen": self.rows_seen,
            "pages_processed": self.pages_processed,
        }


class ExtractionRun:
    """Execute a single extraction job.

    The job row must already exist in `pending`. All outcomes, including
    failures, end up on the job row; `execute` only raises when the job
    could not be started at all.
    """

    def __init__(
        self,
        job_id: str,
        params: ExtractionParams,
        config: AppConfig,
        *,
        session_factory: sessionmaker[Session] | None = None,
        page_factory: PageFactory | None = None,
        advance_retry: RetryConfig | None = None,
        log: LoggerLike | None = None,
    ) -> None:
        self.job_id = job_id
        self.params = params
        self.config = config
        self.session_factory = session_factory
        self.page_factory = page_factory or default_page_factory
        self.advance_retry = advance_retry
        self.log = log or get_contextual_logger("orchestrator", job_id=job_id)

        self.counters = RunCounters()
        self.records: list[ProcessRecord] = []
        self.normalizer = RecordNormalizer(log=self.log)
        self.store = IngestionStore(
            session_factory=session_factory,
            max_inserts=params.max_processes,
            log=self.log,
        )
        self.exporter = ExportSink.from_config(config.export, log=self.log) if config.export.enabled else None

        self._entry_id: int | None = None
        self._extraction_stats: dict[str, Any] = {}
        self._form_report: dict[str, Any] = {}
        self._since_flush = 0

    async def execute(self) -> RunCounters:
        self._start()
        started = time.monotonic()
        page: SearchPage | None = None

        try:
            page = self.page_factory(self.config, self.log)
            await page.open()

            driver = FormDriver(page, self.config.portal, log=self.log)
            report = await driver.configure(self.params, self.config.extraction.results_timeout_ms)
            self._form_report = report.to_dict()
            self.counters.warnings.extend(report.failed.values())

            extractor = PaginatedExtractor(
                page,
                self.config.extraction,
                log=self.log,
                max_records=self.config.extraction.max_rows_scanned,
                advance_retry=self.advance_retry,
            )
            async for batch in extractor.pages():
                self._process_batch(batch)
                self.counters.rows_seen = extractor.stats.rows_seen
                self.counters.pages_processed = extractor.stats.pages_processed
                self._flush_progress()

            self._extraction_stats = extractor.stats.to_dict()
            self.counters.rows_seen = extractor.stats.rows_seen
            self.counters.pages_processed = extractor.stats.pages_processed

            self._complete(self._elapsed_ms(started))

        except Exception as e:
            self.log.error(f"Extraction failed: {e}")
            self._fail(e, traceback.format_exc(), self._elapsed_ms(started))

        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    self.log.warning(f"Error closing browser: {e}")

        return self.counters

    # =========================================================================
    # Batch processing
    # =========================================================================

    def _process_batch(self, batch: list[RawRow]) -> None:
        records: list[ProcessRecord] = []
        for row in batch:
            try:
                records.append(self.normalizer.normalize(row))
            except ValueError as e:
                self._record_error(None, row.entity, f"Normalization failed: {e}", stage="normalize")

        self.records.extend(records)
        self.counters.processed = len(self.records)
        self._export(records)

        for record in records:
            self._ingest(record)

    def _export(self, records: list[ProcessRecord]) -> None:
        if self.exporter is None:
            return
        try:
            paths = self.exporter.append(self.job_id, records)
        except OSError as e:
            message = f"Export failed: {e}"
            self.log.warning(message)
            if message not in self.counters.warnings:
                self.counters.warnings.append(message)
            return
        self.counters.export_paths = [str(p) for p in paths]

    def _ingest(self, record: ProcessRecord) -> None:
        try:
            outcome = self.store.upsert(record, job_id=self.job_id)
        except Exception as e:
            self.log.warning(f"Error saving {record.process_id}: {e}")
            self._record_error(record.process_id, record.entity_name, str(e), stage="persist")
            return

        if outcome.created:
            self.counters.inserted_ids.append(record.process_id)
        elif outcome.updated:
            self.counters.updated_ids.append(record.process_id)
        else:
            self.counters.skipped += 1

        self._since_flush += 1
        if self._since_flush >= self.config.orchestrator.progress_flush_every:
            self._flush_progress()

    def _record_error(
        self,
        process_id: str | None,
        entity_name: str | None,
        error: str,
        stage: str,
    ) -> None:
        self.counters.error_details.append({
            "process_id": process_id,
            "entity_name": entity_name,
            "error": error,
            "stage": stage,
        })

    # =========================================================================
    # Job bookkeeping
    # =========================================================================

    def _start(self) -> None:
        with session_scope(self.session_factory) as session:
            JobRepository(session).mark_running(self.job_id)
            entry = RunLogRepository(session).open(
                self.job_id,
                search_params=self.params.to_payload(),
                max_processes=self.params.max_processes,
            )
            self._entry_id = entry.id
        self.log.info(
            f"Job started: {self.params.contract_object.value} {self.params.year}, "
            f"keywords={list(self.params.keywords)}, max_processes={self.params.max_processes}"
        )

    def _flush_progress(self, session: Session | None = None) -> None:
        self._since_flush = 0
        if session is not None:
            self._write_progress(session)
            return
        with session_scope(self.session_factory) as session:
            self._write_progress(session)

    def _write_progress(self, session: Session) -> None:
        c = self.counters
        JobRepository(session).record_progress(
            self.job_id,
            inserted_ids=c.inserted_ids,
            updated_ids=c.updated_ids,
            error_details=c.error_details,
            skipped=c.skipped,
            rows_seen=c.rows_seen,
            pages_processed=c.pages_processed,
            warnings=c.warnings,
        )

    def _complete(self, duration_ms: int) -> None:
        message = self.counters.summary()
        with session_scope(self.session_factory) as session:
            self._flush_progress(session)
            JobRepository(session).finish(
                self.job_id,
                JobStatus.COMPLETED,
                message,
                duration_ms=duration_ms,
                export_paths=self.counters.export_paths,
            )
            self._close_log_entry(session, JobStatus.COMPLETED, message, duration_ms)
        self.log.info(message)

    def _fail(self, error: Exception, tb: str, duration_ms: int) -> None:
        message = f"Extraction failed: {error}"
        try:
            with session_scope(self.session_factory) as session:
                jobs = JobRepository(session)
                if jobs.require(self.job_id).status == JobStatus.RUNNING.value:
                    self._flush_progress(session)
                jobs.finish(
                    self.job_id,
                    JobStatus.FAILED,
                    message,
                    duration_ms=duration_ms,
                    error_traceback=tb,
                    export_paths=self.counters.export_paths,
                )
                self._close_log_entry(session, JobStatus.FAILED, message, duration_ms)
        except Exception:
            self.log.exception(f"Could not record failure of job {self.job_id}")

    def _close_log_entry(
        self,
        session: Session,
        status: JobStatus,
        message: str,
        duration_ms: int,
    ) -> None:
        if self._entry_id is None:
            return
        c = self.counters
        RunLogRepository(session).close(
            self._entry_id,
            status=status,
            message=message,
            process_count=c.processed,
            inserted_count=c.inserted,
            updated_count=c.updated,
            error_count=c.errored,
            duration_ms=duration_ms,
            details={
                "inserted_ids": list(c.inserted_ids),
                "updated_ids": list(c.updated_ids),
                "error_details": [dict(d) for d in c.error_details],
                "skipped": c.skipped,
                "warnings": list(c.warnings),
                "form": self._form_report,
                "extraction": self._extraction_stats,
            },
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
