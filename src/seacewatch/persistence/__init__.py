"""Database persistence layer."""

from .db import (
    create_db_engine,
    create_schema,
    dispose_engines,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    make_session_factory,
    session_scope,
)
from .models import Base, ExtractionJob, Process, RunLogEntry
from .repo import (
    InvalidJobTransition,
    JobNotFound,
    JobRepository,
    ProcessRepository,
    RunLogRepository,
)
from .store import IngestionStore, UpsertAction, UpsertOutcome

__all__ = [
    "create_db_engine",
    "create_schema",
    "dispose_engines",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "make_session_factory",
    "session_scope",
    "Base",
    "ExtractionJob",
    "Process",
    "RunLogEntry",
    "InvalidJobTransition",
    "JobNotFound",
    "JobRepository",
    "ProcessRepository",
    "RunLogRepository",
    "IngestionStore",
    "UpsertAction",
    "UpsertOutcome",
]
