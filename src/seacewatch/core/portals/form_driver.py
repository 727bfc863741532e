"""
Form driver: puts the remote search form into the state a job asks for.

Every filter step is best-effort. A missing or stubborn control produces a
warning and the run continues with whatever the portal defaults to. Only
submitting the search and waiting for the results table can fail a job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from thefuzz import process

from seacewatch.core.backends.base import ElementNotFound, ResultsTimeout
from seacewatch.core.logging import LoggerLike, get_logger
from seacewatch.core.normalize.parsing import (
    format_portal_date,
    normalize_whitespace,
    strip_accents,
)

from .base import FilterField, SearchPage

if TYPE_CHECKING:
    from seacewatch.core.config.models import PortalConfig
    from seacewatch.core.config.params import ExtractionParams

FUZZY_THRESHOLD = 80


@dataclass
class FormReport:
    """Which form steps took effect and which were skipped."""

    applied: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def ok(self, step: str) -> None:
        self.applied.append(step)

    def fail(self, step: str, reason: str) -> None:
        self.failed[step] = reason

    def to_dict(self) -> dict[str, object]:
        return {"applied": list(self.applied), "failed": dict(self.failed)}


class FormDriver:
    """Configure the search form from `ExtractionParams`."""

    def __init__(
        self,
        page: SearchPage,
        portal: PortalConfig,
        log: LoggerLike | None = None,
    ):
        self.page = page
        self.portal = portal
        self.log = log or get_logger("form")
        self.report = FormReport()
        self._codes = {strip_accents(k): v for k, v in portal.contract_object_codes.items()}

    # =========================================================================
    # Tabs
    # =========================================================================

    async def select_results_tab(self) -> bool:
        """Activate the tab holding the search filters.

        Matches visible labels against the configured candidates; when none
        match, the first inactive tab is tried.
        """
        step = "tab"
        try:
            tabs = await self.page.list_tabs()
        except Exception as e:
            self._warn(step, f"Could not list tabs: {e}")
            return False

        candidates = [strip_accents(c) for c in self.portal.tab_candidates]
        for tab in tabs:
            label = strip_accents(tab.label)
            if not any(c in label for c in candidates):
                continue
            if tab.active:
                self.log.debug(f"Tab '{tab.label}' already active")
                self.report.ok(step)
                return True
            result = await self.page.activate_tab(tab.index)
            if result.success:
                self.log.info(f"Activated tab '{tab.label}'")
                self.report.ok(step)
                return True
            self._warn(step, f"Could not activate tab '{tab.label}': {result.error}")
            return False

        inactive = [t for t in tabs if not t.active]
        if not inactive:
            self._warn(step, "No search tab found, keeping current view")
            return False

        fallback = inactive[0]
        result = await self.page.activate_tab(fallback.index)
        if result.success:
            self.log.warning(f"No tab matched {self.portal.tab_candidates}; activated '{fallback.label}'")
            self.report.ok(step)
            return True
        self._warn(step, f"Fallback tab '{fallback.label}' failed: {result.error}")
        return False

    # =========================================================================
    # Filters
    # =========================================================================

    def resolve_contract_object(self, value: str) -> str | None:
        """Map a contract object label to the form's option value.

        Accents and case are ignored, raw option values pass through, and
        near misses ("servicios") are resolved by fuzzy match.
        """
        key = strip_accents(value)
        if not key:
            return None
        if key in self._codes:
            return self._codes[key]
        if key in self._codes.values():
            return key
        match = process.extractOne(key, list(self._codes))
        if match and match[1] >= FUZZY_THRESHOLD:
            self.log.debug(f"Contract object '{value}' fuzzy-matched '{match[0]}' ({match[1]})")
            return self._codes[match[0]]
        return None

    async def set_contract_object_type(self, value: str) -> bool:
        code = self.resolve_contract_object(value)
        if code is None:
            self._warn("contract_object", f"Unknown contract object '{value}', using portal default")
            return False
        return await self._apply("contract_object", FilterField.CONTRACT_OBJECT, code)

    async def set_year(self, year: int) -> bool:
        return await self._apply("year", FilterField.YEAR, str(year))

    async def set_date_range(self, date_from: date | None, date_to: date | None) -> bool:
        applied = True
        if date_from is not None:
            applied &= await self._apply("date_from", FilterField.DATE_FROM, format_portal_date(date_from))
        if date_to is not None:
            applied &= await self._apply("date_to", FilterField.DATE_TO, format_portal_date(date_to))
        return applied

    async def set_free_text_keywords(self, text: str) -> bool:
        if not text.strip():
            self.log.debug("No keywords given, leaving description filter empty")
            return True
        return await self._apply("keywords", FilterField.KEYWORDS, text)

    async def set_entity(self, name: str) -> bool:
        return await self._apply("entity", FilterField.ENTITY, name)

    async def set_process_type(self, value: str) -> bool:
        return await self._apply("process_type", FilterField.PROCESS_TYPE, value)

    async def _apply(self, step: str, field: FilterField, value: str) -> bool:
        """Set one filter, then read it back when the page can."""
        if not self.page.supports_filter(field):
            self._warn(step, f"No control for '{step}' on this page, skipping")
            return False

        try:
            result = await self.page.set_filter(field, value)
            if not result.success:
                self._warn(step, f"Could not set {step}={value!r}: {result.error}")
                return False

            actual = await self.page.read_filter(field)
        except Exception as e:
            self._warn(step, f"Error setting {step}={value!r}: {e}")
            return False

        if actual is not None and normalize_whitespace(actual) != normalize_whitespace(value):
            self.log.warning(f"Readback mismatch for {step}: wanted {value!r}, form shows {actual!r}")
        else:
            self.log.debug(f"Set {step}={value!r}")
        self.report.ok(step)
        return True

    def _warn(self, step: str, message: str) -> None:
        self.log.warning(message)
        self.report.fail(step, message)

    # =========================================================================
    # Fatal steps
    # =========================================================================

    async def submit_search(self) -> None:
        """Trigger the search.

        Raises:
            ElementNotFound: The submit control is missing or won't click
        """
        result = await self.page.submit()
        if not result.success:
            raise ElementNotFound(
                f"Cannot submit search: {result.error}",
                url=await self.page.current_url(),
            )
        self.log.info("Search submitted")

    async def wait_for_results_ready(self, timeout_ms: int) -> None:
        """Block until the results grid shows up.

        Raises:
            ResultsTimeout: The grid did not appear within `timeout_ms`
        """
        if not await self.page.wait_for_results(timeout_ms):
            raise ResultsTimeout(
                f"Results table did not appear within {timeout_ms}ms",
                url=await self.page.current_url(),
            )
        self.log.info("Results table ready")

    # =========================================================================
    # Whole form
    # =========================================================================

    async def configure(self, params: ExtractionParams, results_timeout_ms: int) -> FormReport:
        """Run every form step in order and return what took effect."""
        self.report = FormReport()

        await self.select_results_tab()
        await self.set_contract_object_type(params.contract_object.value)
        await self.set_year(params.year)
        await self.set_date_range(params.date_from, params.date_to)
        await self.set_free_text_keywords(params.keyword_text)
        if params.entity:
            await self.set_entity(params.entity)
        if params.process_type:
            await self.set_process_type(params.process_type)

        await self.submit_search()
        await self.wait_for_results_ready(results_timeout_ms)

        if self.report.failed:
            self.log.warning(f"Form configured with skipped steps: {sorted(self.report.failed)}")
        return self.report
