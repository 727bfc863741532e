"""
Ingestion store: idempotent upsert of normalized processes.

Each record is written in its own transaction so one bad record never
takes the rest of a job down with it. New inserts can be capped per
store; updates to processes already stored are always applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from seacewatch.core.logging import LoggerLike, get_logger

from .db import session_scope
from .repo import ProcessRepository

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from seacewatch.core.normalize.record import ProcessRecord


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UpsertOutcome:
    process_id: str
    action: UpsertAction

    @property
    def created(self) -> bool:
        return self.action is UpsertAction.CREATED

    @property
    def updated(self) -> bool:
        return self.action is UpsertAction.UPDATED

    @property
    def skipped(self) -> bool:
        return self.action is UpsertAction.SKIPPED


class IngestionStore:
    """Write `ProcessRecord` values keyed by process_id.

    Args:
        session_factory: Session factory; the global one when omitted
        max_inserts: Cap on new rows this store may create (None = no cap)
        log: Logger (usually the job's contextual logger)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        max_inserts: int | None = None,
        log: LoggerLike | None = None,
    ):
        self.session_factory = session_factory
        self.max_inserts = max_inserts
        self.log = log or get_logger("store")
        self.inserted = 0

    @property
    def cap_reached(self) -> bool:
        return self.max_inserts is not None and self.inserted >= self.max_inserts

    def upsert(self, record: ProcessRecord, job_id: str | None = None) -> UpsertOutcome:
        """Insert or update one record.

        Existing processes are overwritten (last writer wins). A new one is
        skipped once the insert cap is reached. An insert that loses a race
        against another writer is retried as an update.
        """
        with session_scope(self.session_factory) as session:
            repo = ProcessRepository(session)

            existing = repo.get_by_process_id(record.process_id)
            if existing is not None:
                repo.apply(existing, record, job_id)
                self.log.debug(f"Updated {record.process_id}")
                return UpsertOutcome(record.process_id, UpsertAction.UPDATED)

            if self.cap_reached:
                self.log.debug(f"Insert cap of {self.max_inserts} reached, skipping {record.process_id}")
                return UpsertOutcome(record.process_id, UpsertAction.SKIPPED)

            try:
                repo.add(record, job_id)
            except IntegrityError:
                session.rollback()
                existing = repo.get_by_process_id(record.process_id)
                if existing is None:
                    raise
                self.log.debug(f"{record.process_id} was inserted concurrently, updating instead")
                repo.apply(existing, record, job_id)
                return UpsertOutcome(record.process_id, UpsertAction.UPDATED)

            self.inserted += 1
            self.log.debug(f"Inserted {record.process_id}")
            return UpsertOutcome(record.process_id, UpsertAction.CREATED)
