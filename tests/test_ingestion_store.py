"""
Tests for the ingestion store and the repositories behind it.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from seacewatch.core.config import JobStatus
from seacewatch.core.normalize.record import ProcessRecord
from seacewatch.persistence import (
    IngestionStore,
    InvalidJobTransition,
    JobNotFound,
    JobRepository,
    ProcessRepository,
    RunLogRepository,
    session_scope,
)


def _record(process_id: str = "AS-SM-1-2025-MDM/CS-1", **overrides) -> ProcessRecord:
    values = {
        "entity_name": "MUNICIPALIDAD DISTRITAL DE MIRAFLORES",
        "published_at": datetime(2025, 10, 9, 14, 30),
        "published_text": "2025-10-09 14:30",
        "nomenclature": process_id,
        "contract_object": "Servicio",
        "description": "Contratación del servicio de desarrollo de software",
        "reference_amount": Decimal("1234567.89"),
        "scraped_at": datetime(2025, 10, 10, 12, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return ProcessRecord(process_id=process_id, **values)


def _count(session_factory) -> int:
    with session_scope(session_factory) as session:
        return ProcessRepository(session).count()


class TestIngestionStore:
    def test_insert_then_update(self, session_factory):
        store = IngestionStore(session_factory)

        first = store.upsert(_record(), job_id="job-1")
        second = store.upsert(_record(description="Descripción corregida del servicio"), job_id="job-2")

        assert first.created
        assert second.updated
        assert store.inserted == 1
        assert _count(session_factory) == 1

        with session_scope(session_factory) as session:
            process = ProcessRepository(session).get_by_process_id("AS-SM-1-2025-MDM/CS-1")
            assert process.description == "Descripción corregida del servicio"
            assert process.last_job_id == "job-2"
            assert process.reference_amount == Decimal("1234567.89")
            assert process.scraped_at == datetime(2025, 10, 10, 12, 0)

    def test_cap_skips_new_rows_only(self, session_factory):
        IngestionStore(session_factory).upsert(_record("OLD-1"))
        store = IngestionStore(session_factory, max_inserts=2)

        outcomes = [store.upsert(_record(f"NEW-{i}")) for i in range(4)]
        old = store.upsert(_record("OLD-1", description="Actualización posterior al tope"))

        assert [o.action.value for o in outcomes] == ["created", "created", "skipped", "skipped"]
        assert store.cap_reached
        assert old.updated
        assert _count(session_factory) == 3

    def test_no_cap(self, session_factory):
        store = IngestionStore(session_factory, max_inserts=None)

        for i in range(5):
            store.upsert(_record(f"P-{i}"))

        assert not store.cap_reached
        assert _count(session_factory) == 5

    def test_lost_insert_race_becomes_update(self, session_factory, monkeypatch):
        IngestionStore(session_factory).upsert(_record("RACE-1"), job_id="other")

        original = ProcessRepository.get_by_process_id
        calls = []

        def blind_first_lookup(self, process_id):
            calls.append(process_id)
            if len(calls) == 1:
                return None
            return original(self, process_id)

        monkeypatch.setattr(ProcessRepository, "get_by_process_id", blind_first_lookup)
        store = IngestionStore(session_factory)

        outcome = store.upsert(_record("RACE-1", description="Versión del segundo escritor"), job_id="mine")

        assert outcome.updated
        assert store.inserted == 0
        assert len(calls) == 2
        monkeypatch.undo()
        with session_scope(session_factory) as session:
            process = ProcessRepository(session).get_by_process_id("RACE-1")
            assert process.last_job_id == "mine"
        assert _count(session_factory) == 1

    def test_null_fields_are_stored(self, session_factory):
        store = IngestionStore(session_factory)

        store.upsert(_record("NULLS-1", published_at=None, published_text=None, reference_amount=None))

        with session_scope(session_factory) as session:
            process = ProcessRepository(session).get_by_process_id("NULLS-1")
            assert process.published_at is None
            assert process.reference_amount is None
            assert process.currency == "Soles"


class TestJobRepository:
    def test_lifecycle(self, session_factory):
        with session_scope(session_factory) as session:
            repo = JobRepository(session)
            job_id = repo.create({"anio": 2025}, max_processes=10).id
            repo.mark_running(job_id)
            repo.record_progress(job_id, inserted_ids=["A", "B"], updated_ids=["C"], error_details=[], skipped=3)
            repo.finish(job_id, JobStatus.COMPLETED, "done", duration_ms=1500)

        with session_scope(session_factory) as session:
            job = JobRepository(session).require(job_id)
            assert job.status == "completed"
            assert job.inserted_count == 2
            assert job.updated_count == 1
            assert job.skipped_count == 3
            assert job.started_at is not None
            assert job.finished_at is not None

    def test_cannot_finish_a_pending_job_as_completed(self, session_factory):
        with session_scope(session_factory) as session:
            repo = JobRepository(session)
            job = repo.create({})

            with pytest.raises(InvalidJobTransition):
                repo.finish(job.id, JobStatus.COMPLETED, "too early")

    def test_terminal_status_is_final(self, session_factory):
        with session_scope(session_factory) as session:
            repo = JobRepository(session)
            job = repo.create({})
            repo.finish(job.id, JobStatus.FAILED, "boom")

            with pytest.raises(InvalidJobTransition):
                repo.mark_running(job.id)

    def test_progress_requires_running(self, session_factory):
        with session_scope(session_factory) as session:
            repo = JobRepository(session)
            job = repo.create({})

            with pytest.raises(InvalidJobTransition):
                repo.record_progress(job.id, inserted_ids=[], updated_ids=[], error_details=[])

    def test_unknown_job(self, session_factory):
        with session_scope(session_factory) as session:
            with pytest.raises(JobNotFound):
                JobRepository(session).require("missing")

    def test_stats(self, session_factory):
        with session_scope(session_factory) as session:
            repo = JobRepository(session)
            done = repo.create({})
            repo.mark_running(done.id)
            repo.record_progress(done.id, inserted_ids=["A"], updated_ids=[], error_details=[{"id": "X"}])
            repo.finish(done.id, JobStatus.COMPLETED, "ok", duration_ms=2000)
            repo.create({})

        with session_scope(session_factory) as session:
            stats = JobRepository(session).stats()

        assert stats["total"] == 2
        assert stats["by_status"]["completed"] == 1
        assert stats["by_status"]["pending"] == 1
        assert stats["inserted"] == 1
        assert stats["errored"] == 1
        assert stats["avg_completed_duration_ms"] == 2000


class TestRunLogRepository:
    def test_entry_closes_once(self, session_factory):
        with session_scope(session_factory) as session:
            job = JobRepository(session).create({})
            log = RunLogRepository(session)
            entry = log.open(job.id, search_params={"anio": 2025}, max_processes=5)

            log.close(entry.id, status=JobStatus.COMPLETED, message="ok", inserted_count=2)

            assert not entry.is_open
            with pytest.raises(InvalidJobTransition):
                log.close(entry.id, status=JobStatus.FAILED, message="again")

            assert [e.id for e in log.for_job(job.id)] == [entry.id]
