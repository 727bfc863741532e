"""
In-memory stand-in for the SEACE search page.
"""

from __future__ import annotations

from seacewatch.core.backends.base import ActionResult
from seacewatch.core.portals.base import (
    FilterField,
    PaginationState,
    RawRow,
    SearchPage,
    TabInfo,
)

FAKE_URL = "https://fake.seace.test/buscador"

DEFAULT_TABS = [
    TabInfo(0, "Buscador de Procedimientos de Selección", False),
    TabInfo(1, "Buscador de Planes Anuales", True),
]


def make_cells(
    ordinal: int,
    *,
    entity: str = "MUNICIPALIDAD DISTRITAL DE MIRAFLORES",
    published: str = "09/10/2025 14:30",
    nomenclature: str | None = None,
    contract_object: str = "Servicio",
    description: str = "Contratación del servicio de desarrollo de software",
    amount: str = "1.234.567,89",
    currency: str = "Soles",
    version: str = "3",
) -> tuple[str, ...]:
    """A complete 11-column results row."""
    if nomenclature is None:
        nomenclature = f"AS-SM-{ordinal}-2025-MDM/CS-1"
    return (
        str(ordinal),
        entity,
        published,
        nomenclature,
        "",
        contract_object,
        description,
        "",
        amount,
        currency,
        version,
    )


def make_pages(total_rows: int, per_page: int, **overrides) -> list[list[tuple[str, ...]]]:
    """Split `total_rows` numbered rows into pages of `per_page`."""
    rows = [make_cells(i, **overrides) for i in range(1, total_rows + 1)]
    return [rows[i:i + per_page] for i in range(0, total_rows, per_page)]


class FakeSearchPage(SearchPage):
    """Scripted search page.

    Args:
        pages: Rows shown on each results page, in order
        tabs: Visible tabs
        unsupported: Filters the page has no control for
        failing_filters: Filters whose control rejects input
        readback: Values `read_filter` reports instead of what was set
        submit_ok: Whether the submit control works
        results_ready: Whether the results grid ever shows up
        stuck_at: Page index after which "next" clicks no longer move
        click_failures: Number of leading "next" clicks that fail
        open_error: Exception raised by `open`
    """

    def __init__(
        self,
        pages: list[list[tuple[str, ...]]],
        *,
        tabs: list[TabInfo] | None = None,
        unsupported: set[FilterField] | None = None,
        failing_filters: set[FilterField] | None = None,
        readback: dict[FilterField, str] | None = None,
        submit_ok: bool = True,
        results_ready: bool = True,
        stuck_at: int | None = None,
        click_failures: int = 0,
        open_error: Exception | None = None,
    ):
        self.pages = pages
        self.tabs = list(DEFAULT_TABS if tabs is None else tabs)
        self.unsupported = unsupported or set()
        self.failing_filters = failing_filters or set()
        self.readback = readback or {}
        self.submit_ok = submit_ok
        self.results_ready = results_ready
        self.stuck_at = stuck_at
        self.click_failures = click_failures
        self.open_error = open_error

        self.index = 0
        self.filters: dict[FilterField, str] = {}
        self.activated: list[int] = []
        self.opened = False
        self.submitted = False
        self.close_calls = 0
        self.next_clicks = 0
        self.pauses: list[int] = []

    @property
    def position_text(self) -> str:
        return f"Página: {self.index + 1}/{max(len(self.pages), 1)}"

    async def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    async def close(self) -> None:
        self.close_calls += 1

    def supports_filter(self, field: FilterField) -> bool:
        return field not in self.unsupported

    async def list_tabs(self) -> list[TabInfo]:
        return list(self.tabs)

    async def activate_tab(self, index: int) -> ActionResult:
        self.activated.append(index)
        self.tabs = [TabInfo(t.index, t.label, t.index == index) for t in self.tabs]
        return ActionResult.ok("activate_tab")

    async def set_filter(self, field: FilterField, value: str) -> ActionResult:
        if field in self.failing_filters:
            return ActionResult.failed("set_filter", "control is disabled", selector=field.value)
        self.filters[field] = value
        return ActionResult.ok("set_filter", selector=field.value)

    async def read_filter(self, field: FilterField) -> str | None:
        if field in self.readback:
            return self.readback[field]
        return self.filters.get(field)

    async def submit(self) -> ActionResult:
        if not self.submit_ok:
            return ActionResult.failed("submit", "button not found")
        self.submitted = True
        return ActionResult.ok("submit")

    async def wait_for_results(self, timeout_ms: int) -> bool:
        return self.results_ready and self.submitted

    async def extract_rows(self, page_number: int) -> list[RawRow]:
        if not self.pages:
            return []
        return [
            RawRow(cells=cells, row_index=i, page_number=page_number, source_url=FAKE_URL)
            for i, cells in enumerate(self.pages[self.index])
        ]

    async def pagination_state(self) -> PaginationState:
        return PaginationState.from_text(
            has_next=self.index < len(self.pages) - 1,
            position_text=self.position_text,
        )

    async def click_next(self) -> ActionResult:
        self.next_clicks += 1
        if self.click_failures > 0:
            self.click_failures -= 1
            return ActionResult.failed("click_next", "element is not attached to the DOM")
        if self.stuck_at is not None and self.index >= self.stuck_at:
            return ActionResult.ok("click_next")
        self.index += 1
        return ActionResult.ok("click_next")

    async def wait_for_position_change(self, before: str | None, timeout_ms: int) -> bool:
        return self.position_text != before

    async def wait_for_rows(self, timeout_ms: int) -> bool:
        return bool(self.pages and self.pages[self.index])

    async def pause(self, ms: int) -> None:
        self.pauses.append(ms)

    async def current_url(self) -> str | None:
        return FAKE_URL
