"""CLI command modules."""

from . import db, exports, jobs, scrape

__all__ = [
    "db",
    "exports",
    "jobs",
    "scrape",
]
