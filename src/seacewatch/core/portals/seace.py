"""
SEACE public search page on Playwright.

The portal is a PrimeFaces application: tabs are `ui-tabs` widgets, the
results grid is a `ui-datatable` and the paginator reports its position as
"Página: N/M". Rows are parsed with lxml from the rendered HTML in one pass
rather than cell by cell through the browser.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from lxml import html as lxml_html

from seacewatch.core.backends.base import (
    ActionResult,
    NavigationTimeout,
    RequestSpec,
)
from seacewatch.core.backends.playwright_backend import PlaywrightBackend
from seacewatch.core.fetch.retries import RetryConfig, retry_async
from seacewatch.core.normalize.parsing import normalize_whitespace

from .base import FilterField, PaginationState, RawRow, SearchPage, TabInfo

if TYPE_CHECKING:
    from seacewatch.core.config.models import AppConfig, BrowserConfig, PortalConfig

logger = logging.getLogger(__name__)

SELECT_FIELDS = {FilterField.CONTRACT_OBJECT, FilterField.YEAR, FilterField.PROCESS_TYPE}

_LIST_TABS_JS = """
([selector, activeClasses]) => Array.from(document.querySelectorAll(selector)).map((el) => {
    const holder = el.closest('li') || el;
    const classes = (holder.className || '') + ' ' + (el.className || '');
    const active = activeClasses.some((c) => classes.split(/\\s+/).includes(c))
        || el.getAttribute('aria-selected') === 'true'
        || holder.getAttribute('aria-selected') === 'true';
    return { label: (el.textContent || '').trim(), active: active };
})
"""

_CLICK_NTH_JS = """
([selector, index]) => {
    const el = document.querySelectorAll(selector)[index];
    if (!el) return false;
    el.click();
    return true;
}
"""

_PAGINATOR_JS = """
([nextSelector, disabledClass, currentSelector]) => {
    const next = document.querySelector(nextSelector);
    const current = document.querySelector(currentSelector);
    return {
        exists: !!next,
        disabled: !next || next.classList.contains(disabledClass),
        text: current ? current.textContent.trim() : null,
    };
}
"""

_POSITION_CHANGED_JS = """
([selector, before]) => {
    const el = document.querySelector(selector);
    return !!el && el.textContent.trim() !== before;
}
"""


class SeaceSearchPage(SearchPage):
    """SearchPage backed by a dedicated Playwright browser."""

    def __init__(
        self,
        backend: PlaywrightBackend,
        portal: PortalConfig,
        browser: BrowserConfig,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.backend = backend
        self.portal = portal
        self.browser = browser
        self.selectors = portal.selectors
        self.log = log or logger

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        log: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> SeaceSearchPage:
        return cls(
            PlaywrightBackend.from_config(config.browser),
            config.portal,
            config.browser,
            log=log,
        )

    def _selector_for(self, field: FilterField) -> str | None:
        return getattr(self.selectors, field.value)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> None:
        request = RequestSpec(
            url=self.portal.base_url,
            timeout=self.browser.navigation_timeout_ms / 1000,
            page_type="search",
        )
        retry = RetryConfig(
            max_attempts=self.browser.max_retries,
            min_wait=2,
            max_wait=15,
            retry_exceptions=(NavigationTimeout,),
        )
        self.log.info(f"Opening {self.portal.base_url}")
        result = await retry_async(self.backend.fetch, request, config=retry, log=self.log)
        self.log.debug(f"Search page loaded in {result.elapsed_ms:.0f}ms ({result.status_code})")

    async def close(self) -> None:
        await self.backend.close()

    def supports_filter(self, field: FilterField) -> bool:
        return bool(self._selector_for(field))

    # =========================================================================
    # Form
    # =========================================================================

    async def list_tabs(self) -> list[TabInfo]:
        raw: list[dict[str, Any]] = await self.backend.evaluate(
            _LIST_TABS_JS,
            [self.selectors.tabs, self.portal.active_tab_classes],
        )
        return [
            TabInfo(index=i, label=normalize_whitespace(tab.get("label")), active=bool(tab.get("active")))
            for i, tab in enumerate(raw or [])
        ]

    async def activate_tab(self, index: int) -> ActionResult:
        try:
            clicked = await self.backend.evaluate(_CLICK_NTH_JS, [self.selectors.tabs, index])
        except Exception as e:
            return ActionResult.failed("tab", str(e), self.selectors.tabs)
        if not clicked:
            return ActionResult.failed("tab", f"no tab at index {index}", self.selectors.tabs)
        await self.backend.pause(1000)
        return ActionResult.ok("tab", self.selectors.tabs)

    async def set_filter(self, field: FilterField, value: str) -> ActionResult:
        selector = self._selector_for(field)
        if not selector:
            return ActionResult.failed("filter", f"no control configured for {field.value}")

        if field in SELECT_FIELDS:
            result = await self.backend.select_option(selector, value=value)
            if not result.success:
                result = await self.backend.select_option(selector, label=value)
            return result

        return await self.backend.type_text(selector, value, delay_ms=self.portal.typing_delay_ms)

    async def read_filter(self, field: FilterField) -> str | None:
        selector = self._selector_for(field)
        if not selector:
            return None
        return await self.backend.input_value(selector)

    async def submit(self) -> ActionResult:
        selector = self.selectors.submit
        if not await self.backend.wait_for_selector(selector, state="attached", timeout_ms=10000):
            return ActionResult.failed("submit", "submit control not found", selector)
        return await self.backend.click_via_script(selector)

    async def wait_for_results(self, timeout_ms: int) -> bool:
        return await self.backend.wait_for_selector(self.selectors.results_ready, timeout_ms=timeout_ms)

    # =========================================================================
    # Results grid
    # =========================================================================

    async def extract_rows(self, page_number: int) -> list[RawRow]:
        html = await self.backend.get_page_content()
        source_url = await self.backend.get_page_url()
        tree = lxml_html.fromstring(html)

        rows = tree.cssselect(self.selectors.rows)
        if not rows:
            rows = tree.cssselect(self.selectors.rows_fallback)

        return [
            RawRow(
                cells=tuple(self._get_text_content(td) for td in row.cssselect("td")),
                row_index=index,
                page_number=page_number,
                source_url=source_url,
            )
            for index, row in enumerate(rows)
        ]

    def _get_text_content(self, element: lxml_html.HtmlElement) -> str:
        text = element.text_content()
        return " ".join(text.split()) if text else ""

    async def pagination_state(self) -> PaginationState:
        info: dict[str, Any] = await self.backend.evaluate(
            _PAGINATOR_JS,
            [
                self.selectors.next_button,
                self.selectors.next_disabled_class,
                self.selectors.paginator_current,
            ],
        )
        return PaginationState.from_text(
            has_next=bool(info.get("exists")) and not info.get("disabled"),
            position_text=info.get("text"),
        )

    async def click_next(self) -> ActionResult:
        selector = f"{self.selectors.next_button}:not(.{self.selectors.next_disabled_class})"
        return await self.backend.click_via_script(selector)

    async def wait_for_position_change(self, before: str | None, timeout_ms: int) -> bool:
        return await self.backend.wait_for_function(
            _POSITION_CHANGED_JS,
            arg=[self.selectors.paginator_current, before or ""],
            timeout_ms=timeout_ms,
        )

    async def wait_for_rows(self, timeout_ms: int) -> bool:
        return await self.backend.wait_for_selector(self.selectors.rows, timeout_ms=timeout_ms)

    async def pause(self, ms: int) -> None:
        await self.backend.pause(ms)

    async def current_url(self) -> str | None:
        return await self.backend.get_page_url()
