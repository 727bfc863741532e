"""
Paginated extraction of the results grid.

States: IDLE -> EXTRACTING_PAGE -> CHECKING_NEXT_PAGE -> ADVANCING_PAGE ->
EXTRACTING_PAGE ... -> DONE. Pages are read strictly in ascending order and
the iterator cannot be restarted; a new run starts from page one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator

from seacewatch.core.backends.base import ActionFailed, NavigationTimeout
from seacewatch.core.fetch.retries import RetryConfig, retry_async
from seacewatch.core.logging import ContextualLogger, LoggerLike, get_logger
from seacewatch.core.portals.base import PaginationState, RawRow, SearchPage

from .rows import validate_row

if TYPE_CHECKING:
    from seacewatch.core.config.models import ExtractionSettings


class ExtractorState(str, Enum):
    IDLE = "idle"
    EXTRACTING_PAGE = "extracting_page"
    CHECKING_NEXT_PAGE = "checking_next_page"
    ADVANCING_PAGE = "advancing_page"
    DONE = "done"


class StopReason(str, Enum):
    NO_NEXT_PAGE = "no_next_page"
    SCAN_LIMIT = "scan_limit"
    EMPTY_PAGE = "empty_page"
    MAX_PAGES = "max_pages"


@dataclass
class ExtractionStats:
    """Counters for one extraction pass."""

    pages_processed: int = 0
    rows_seen: int = 0
    rows_valid: int = 0
    rows_invalid: int = 0
    rows_repeated: int = 0
    stop_reason: StopReason | None = None
    last_position: str | None = None
    total_pages: int | None = None
    page_counts: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "pages_processed": self.pages_processed,
            "rows_seen": self.rows_seen,
            "rows_valid": self.rows_valid,
            "rows_invalid": self.rows_invalid,
            "rows_repeated": self.rows_repeated,
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
            "last_position": self.last_position,
            "total_pages": self.total_pages,
        }


class PaginatedExtractor:
    """Pull validated rows page by page from a `SearchPage`.

    Args:
        page: Page object already showing the first results page
        settings: Waits, bounds and validation thresholds
        log: Logger (usually the job's contextual logger)
        max_records: Optional scan limit on valid rows read
        advance_retry: Retry policy for clicking "next"
    """

    def __init__(
        self,
        page: SearchPage,
        settings: ExtractionSettings,
        log: LoggerLike | None = None,
        max_records: int | None = None,
        advance_retry: RetryConfig | None = None,
    ):
        self.page = page
        self.settings = settings
        self.base_log = log or get_logger("extract")
        self.log = self.base_log
        self.max_records = max_records
        self.advance_retry = advance_retry or RetryConfig(
            max_attempts=2,
            min_wait=1,
            max_wait=3,
            jitter=False,
            retry_exceptions=(ActionFailed,),
        )

        self.state = ExtractorState.IDLE
        self.stats = ExtractionStats()
        self.page_number = 0
        self._seen_rows: set[tuple[str, ...]] = set()
        self._last_state: PaginationState | None = None

    # =========================================================================
    # Single steps
    # =========================================================================

    async def extract_current_page(self) -> list[RawRow]:
        """Read and validate the rows currently rendered.

        Rows failing validation are dropped at debug level. Rows identical
        in every cell to one already read in this run are dropped too, so a
        page that silently failed to advance comes back empty. The ordinal
        alone is not a key: the grid may number each page from 1.
        """
        self.state = ExtractorState.EXTRACTING_PAGE
        raw_rows = await self.page.extract_rows(self.page_number)
        self.stats.rows_seen += len(raw_rows)

        valid: list[RawRow] = []
        for row in raw_rows:
            check = validate_row(
                row,
                min_columns=self.settings.min_columns,
                min_description_length=self.settings.min_description_length,
                header_labels=self.settings.header_labels,
            )
            if not check.ok:
                self.stats.rows_invalid += 1
                self.log.debug(f"Dropped row {row.row_index} on page {row.page_number}: {check.reason}")
                continue
            fingerprint = tuple(row.cells)
            if fingerprint in self._seen_rows:
                self.stats.rows_repeated += 1
                self.log.debug(f"Row #{check.ordinal} already read, skipping")
                continue
            self._seen_rows.add(fingerprint)
            valid.append(row)

        self.stats.pages_processed += 1
        self.stats.page_counts.append(len(valid))
        self.log.info(f"Page {self.page_number}: {len(valid)} valid of {len(raw_rows)} rows")
        return valid

    async def has_next_page(self) -> PaginationState:
        """Whether "next" is enabled, with the reported page counters."""
        self.state = ExtractorState.CHECKING_NEXT_PAGE
        state = await self.page.pagination_state()
        self._last_state = state
        self.stats.last_position = state.position_text
        if state.total_pages is not None:
            self.stats.total_pages = state.total_pages
        self.log.debug(
            f"Paginator: {state.position_text or '?'} "
            f"(page {state.current_page}/{state.total_pages}, next={state.has_next})"
        )
        return state

    async def advance_page(self) -> None:
        """Click "next" and wait for the grid to move.

        Waits in layers: the position text change, then data rows, then a
        fixed settle delay. An unchanged position only logs a warning.

        Raises:
            NavigationTimeout: "next" could not be clicked after retrying
        """
        self.state = ExtractorState.ADVANCING_PAGE
        before = self._last_state.position_text if self._last_state else None

        async def click() -> None:
            result = await self.page.click_next()
            if not result.success:
                raise ActionFailed(f"Next page click failed: {result.error}")

        try:
            await retry_async(click, config=self.advance_retry, log=self.log)
        except ActionFailed as e:
            raise NavigationTimeout(
                f"Could not advance past page {self.page_number}: {e}",
                url=await self.page.current_url(),
                cause=e,
            ) from e

        self._enter_page(self.page_number + 1)
        await self.page.pause(self.settings.settle_ms)

        if not await self.page.wait_for_position_change(before, self.settings.position_change_timeout_ms):
            self.log.warning(f"Paginator text did not change from {before!r}")
        if not await self.page.wait_for_rows(self.settings.rows_timeout_ms):
            self.log.warning("No data rows appeared after advancing")

        await self.page.pause(self.settings.settle_ms)

        after = await self.page.pagination_state()
        if before and after.position_text == before:
            self.log.warning(f"Still at {before!r}; navigation may have silently failed")

    def _enter_page(self, number: int) -> None:
        self.page_number = number
        if isinstance(self.base_log, ContextualLogger):
            self.log = self.base_log.with_context(page=number)

    # =========================================================================
    # Loop
    # =========================================================================

    async def pages(self) -> AsyncIterator[list[RawRow]]:
        """Yield each page's valid rows until a stop condition is met."""
        if self.state is not ExtractorState.IDLE:
            raise RuntimeError("PaginatedExtractor is single-use; create a new one for a new run")

        self._enter_page(1)
        yielded = 0

        while True:
            rows = await self.extract_current_page()

            if not rows:
                state = await self.has_next_page()
                if state.has_next:
                    self.log.warning(
                        f"Page {self.page_number} yielded no rows while the paginator reports more; stopping"
                    )
                else:
                    self.log.info(f"Page {self.page_number} yielded no rows; stopping")
                self.stats.stop_reason = StopReason.EMPTY_PAGE
                break

            if self.max_records is not None:
                rows = rows[: self.max_records - yielded]
            yielded += len(rows)
            self.stats.rows_valid += len(rows)
            yield rows

            if self.max_records is not None and yielded >= self.max_records:
                self.log.info(f"Scan limit of {self.max_records} rows reached")
                self.stats.stop_reason = StopReason.SCAN_LIMIT
                break

            state = await self.has_next_page()
            if not state.has_next:
                self.log.info(f"No more pages after page {self.page_number}")
                self.stats.stop_reason = StopReason.NO_NEXT_PAGE
                break

            if self.page_number >= self.settings.max_pages:
                self.log.warning(f"Stopping at page bound of {self.settings.max_pages}")
                self.stats.stop_reason = StopReason.MAX_PAGES
                break

            await self.advance_page()
            await self.page.pause(self.settings.page_pause_ms)

        self.state = ExtractorState.DONE

    async def rows(self) -> AsyncIterator[RawRow]:
        """Yield valid rows one at a time, in page order."""
        async for batch in self.pages():
            for row in batch:
                yield row
