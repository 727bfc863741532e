"""Side-file export of extracted processes."""

from .sink import CSV_COLUMNS, EXPORT_PREFIX, EXPORT_SUFFIXES, ExportSink

__all__ = ["CSV_COLUMNS", "EXPORT_PREFIX", "EXPORT_SUFFIXES", "ExportSink"]
