"""Normalization of scraped rows into typed process records."""

from .parsing import (
    ParsedDate,
    clean_cell,
    format_portal_date,
    normalize_whitespace,
    parse_amount,
    parse_filter_date,
    parse_publication_date,
    strip_accents,
)
from .record import ProcessRecord, RecordNormalizer, generate_process_id

__all__ = [
    # Parsing
    "ParsedDate",
    "clean_cell",
    "format_portal_date",
    "normalize_whitespace",
    "parse_amount",
    "parse_filter_date",
    "parse_publication_date",
    "strip_accents",
    # Records
    "ProcessRecord",
    "RecordNormalizer",
    "generate_process_id",
]
