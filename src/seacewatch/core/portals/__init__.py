"""Search page objects and the form driver."""

from .base import (
    EXPECTED_COLUMNS,
    FilterField,
    PaginationState,
    RawRow,
    SearchPage,
    TabInfo,
    parse_position_text,
)
from .form_driver import FormDriver, FormReport
from .seace import SeaceSearchPage

__all__ = [
    "EXPECTED_COLUMNS",
    "FilterField",
    "PaginationState",
    "RawRow",
    "SearchPage",
    "TabInfo",
    "parse_position_text",
    "FormDriver",
    "FormReport",
    "SeaceSearchPage",
]
