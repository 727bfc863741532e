"""Job orchestration: background extraction runs and their bookkeeping."""

from seacewatch.persistence.repo import InvalidJobTransition, JobNotFound

from .jobs import JobOrchestrator
from .runner import ExtractionRun, RunCounters, default_page_factory

__all__ = [
    "ExtractionRun",
    "InvalidJobTransition",
    "JobNotFound",
    "JobOrchestrator",
    "RunCounters",
    "default_page_factory",
]
