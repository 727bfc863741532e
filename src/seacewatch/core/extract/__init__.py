"""Row validation and paginated extraction of the results grid."""

from .paginated import ExtractionStats, ExtractorState, PaginatedExtractor, StopReason
from .rows import RowCheck, parse_ordinal, validate_row

__all__ = [
    "ExtractionStats",
    "ExtractorState",
    "PaginatedExtractor",
    "StopReason",
    "RowCheck",
    "parse_ordinal",
    "validate_row",
]
