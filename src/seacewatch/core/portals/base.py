"""
Search page interface and the values it produces.

The form driver and the paginated extractor talk only to `SearchPage`;
`SeaceSearchPage` implements it on Playwright and tests use an in-memory
fake.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from seacewatch.core.backends.base import ActionResult


class FilterField(str, Enum):
    """Search form filters a page object knows how to set."""

    CONTRACT_OBJECT = "contract_object"
    YEAR = "year"
    DATE_FROM = "date_from"
    DATE_TO = "date_to"
    KEYWORDS = "keywords"
    ENTITY = "entity"
    PROCESS_TYPE = "process_type"


# Positional columns of the results grid
COL_ORDINAL = 0
COL_ENTITY = 1
COL_PUBLISHED = 2
COL_NOMENCLATURE = 3
COL_RESTARTED_FROM = 4
COL_CONTRACT_OBJECT = 5
COL_DESCRIPTION = 6
COL_SNIP = 7
COL_AMOUNT = 8
COL_CURRENCY = 9
COL_VERSION = 10

EXPECTED_COLUMNS = 11


@dataclass(frozen=True)
class RawRow:
    """One results-grid row as scraped text."""

    cells: tuple[str, ...]
    row_index: int
    page_number: int
    source_url: str | None = None

    def cell(self, index: int) -> str:
        """Cell text, or an empty string past the end of a short row."""
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return ""

    @property
    def ordinal(self) -> str:
        return self.cell(COL_ORDINAL)

    @property
    def entity(self) -> str:
        return self.cell(COL_ENTITY)

    @property
    def description(self) -> str:
        return self.cell(COL_DESCRIPTION)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cells": list(self.cells),
            "row_index": self.row_index,
            "page_number": self.page_number,
            "source_url": self.source_url,
        }


@dataclass(frozen=True)
class TabInfo:
    """A visible tab in the search panel."""

    index: int
    label: str
    active: bool


_POSITION_RE = re.compile(r"P[áa]gina:?\s*(\d+)\s*/\s*(\d+)", re.IGNORECASE)


def parse_position_text(text: str | None) -> tuple[int | None, int | None]:
    """Parse the paginator text ("Página: 2/7") into (current, total)."""
    if not text:
        return None, None
    match = _POSITION_RE.search(text)
    if not match:
        return None, None
    return int(match.group(1)), int(match.group(2))


@dataclass(frozen=True)
class PaginationState:
    """Paginator snapshot: whether "next" is enabled plus reported counters."""

    has_next: bool
    current_page: int | None = None
    total_pages: int | None = None
    position_text: str | None = None

    @classmethod
    def from_text(cls, has_next: bool, position_text: str | None) -> PaginationState:
        current, total = parse_position_text(position_text)
        return cls(
            has_next=has_next,
            current_page=current,
            total_pages=total,
            position_text=position_text,
        )


class SearchPage(ABC):
    """Typed operations against the procurement search page.

    Actions return `ActionResult` for ordinary failures; waits return
    booleans. Only lifecycle problems (browser launch, portal load) raise.
    """

    @abstractmethod
    async def open(self) -> None:
        """Load the search page. Raises BrowserError subclasses."""

    @abstractmethod
    async def close(self) -> None:
        """Release the browser session. Safe to call more than once."""

    @abstractmethod
    def supports_filter(self, field: FilterField) -> bool:
        """Whether the page has a control for this filter."""

    @abstractmethod
    async def list_tabs(self) -> list[TabInfo]: ...

    @abstractmethod
    async def activate_tab(self, index: int) -> ActionResult: ...

    @abstractmethod
    async def set_filter(self, field: FilterField, value: str) -> ActionResult: ...

    @abstractmethod
    async def read_filter(self, field: FilterField) -> str | None: ...

    @abstractmethod
    async def submit(self) -> ActionResult: ...

    @abstractmethod
    async def wait_for_results(self, timeout_ms: int) -> bool: ...

    @abstractmethod
    async def extract_rows(self, page_number: int) -> list[RawRow]:
        """Read every row currently rendered in the results grid."""

    @abstractmethod
    async def pagination_state(self) -> PaginationState: ...

    @abstractmethod
    async def click_next(self) -> ActionResult: ...

    @abstractmethod
    async def wait_for_position_change(self, before: str | None, timeout_ms: int) -> bool: ...

    @abstractmethod
    async def wait_for_rows(self, timeout_ms: int) -> bool: ...

    @abstractmethod
    async def pause(self, ms: int) -> None: ...

    @abstractmethod
    async def current_url(self) -> str | None: ...

    async def __aenter__(self) -> SearchPage:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
