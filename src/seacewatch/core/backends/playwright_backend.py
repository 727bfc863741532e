"""
Playwright backend for browser automation.

Provides async browser control with:
- JavaScript rendering of PrimeFaces pages
- Keystroke-level typing for masked inputs
- Selector and predicate waits that report instead of raising
- Screenshot capture on errors
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .base import (
    ActionResult,
    Backend,
    BackendError,
    BrowserError,
    FetchResult,
    NavigationTimeout,
    PageBlocked,
    RequestSpec,
)

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from seacewatch.core.config.models import BrowserConfig

logger = logging.getLogger(__name__)

BLOCKED_STATUS_CODES = {403, 406, 418, 429, 451}


class PlaywrightBackend(Backend):
    """One browser, one context, one page.

    Each extraction job owns its own instance; nothing here is shared
    between jobs.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: float = 60.0,
        browser_type: str = "chromium",
        viewport_width: int = 1920,
        viewport_height: int = 1080,
        user_agent: str | None = None,
        executable_path: str | None = None,
        launch_args: list[str] | None = None,
        screenshots_path: Path | str | None = None,
        screenshots_on_error: bool = True,
    ):
        """Initialize Playwright backend.

        Args:
            headless: Run browser in headless mode
            timeout: Default per-step timeout in seconds
            browser_type: Browser to use (chromium, firefox, webkit)
            viewport_width: Browser viewport width
            viewport_height: Browser viewport height
            user_agent: Custom user agent string
            executable_path: Browser binary (defaults to $CHROME_BIN when set)
            launch_args: Extra chromium command line flags
            screenshots_path: Directory for error screenshots
            screenshots_on_error: Capture screenshots on errors
        """
        self.headless = headless
        self.timeout = timeout
        self.timeout_ms = int(timeout * 1000)
        self.browser_type = browser_type
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.user_agent = user_agent
        self.executable_path = executable_path or os.environ.get("CHROME_BIN") or None
        self.launch_args = list(launch_args or [])
        self.screenshots_on_error = screenshots_on_error
        self.screenshots_path = Path(screenshots_path or "data/screenshots")

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @classmethod
    def from_config(cls, config: BrowserConfig) -> PlaywrightBackend:
        return cls(
            headless=config.headless,
            timeout=config.step_timeout_ms / 1000,
            browser_type=config.browser.value,
            viewport_width=config.viewport_width,
            viewport_height=config.viewport_height,
            user_agent=config.user_agent,
            executable_path=config.executable_path,
            launch_args=config.launch_args,
            screenshots_path=config.screenshots_path,
            screenshots_on_error=config.screenshots_on_error,
        )

    @property
    def name(self) -> str:
        return "playwright"

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _ensure_browser(self) -> None:
        """Initialize browser if not already running."""
        if self._browser is not None and self._browser.is_connected():
            return

        if self._playwright is not None:
            logger.warning("Browser disconnected, relaunching")
            try:
                await self.close()
            except Exception as e:
                logger.warning(f"Error releasing disconnected browser: {e}")
            self._playwright = None

        try:
            from playwright.async_api import async_playwright
        except ImportError as e:
            raise BackendError(
                "Playwright is not installed. Run: playwright install chromium",
                cause=e,
            ) from e

        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_type, self._playwright.chromium)

        launch_options: dict[str, Any] = {"headless": self.headless}
        if self.browser_type == "chromium":
            launch_options["args"] = self.launch_args
            if self.executable_path:
                launch_options["executable_path"] = self.executable_path

        try:
            self._browser = await launcher.launch(**launch_options)
        except Exception as e:
            raise BrowserError(
                f"Failed to launch {self.browser_type} browser. "
                "Run: playwright install chromium",
                cause=e,
            ) from e

        logger.info(f"Launched {self.browser_type} browser (headless={self.headless})")

    async def _ensure_context(self) -> BrowserContext:
        await self._ensure_browser()
        if self._context is not None:
            return self._context

        context_options: dict[str, Any] = {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "locale": "es-PE",
            "timezone_id": "America/Lima",
        }
        if self.user_agent:
            context_options["user_agent"] = self.user_agent

        self._context = await self._browser.new_context(**context_options)  # type: ignore[union-attr]
        return self._context

    async def _get_page(self) -> Page:
        context = await self._ensure_context()
        if self._page is None or self._page.is_closed():
            self._page = await context.new_page()
            self._page.set_default_timeout(self.timeout_ms)
        return self._page

    async def _capture_screenshot(self, page: Page, prefix: str = "error") -> str | None:
        """Capture screenshot for debugging."""
        if not self.screenshots_on_error:
            return None

        try:
            self.screenshots_path.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            filepath = self.screenshots_path / f"{prefix}_{timestamp}.png"
            await page.screenshot(path=str(filepath), full_page=True)
            logger.info(f"Screenshot saved: {filepath}")
            return str(filepath)
        except Exception as e:
            logger.warning(f"Failed to capture screenshot: {e}")
            return None

    async def close(self) -> None:
        """Close page, context, browser and driver, in that order."""
        try:
            if self._page and not self._page.is_closed():
                await self._page.close()
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
        finally:
            self._page = None
            self._context = None
            self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
        logger.info("Playwright backend closed")

    # =========================================================================
    # Navigation
    # =========================================================================

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Navigate to a URL and return the rendered document.

        Raises:
            NavigationTimeout: The page did not load in time
            PageBlocked: The portal answered with a blocking status
            BrowserError: Any other browser failure
        """
        page = await self._get_page()
        started = time.monotonic()

        try:
            response = await page.goto(
                request.url,
                timeout=int(request.timeout * 1000),
                wait_until=request.wait_until,  # type: ignore[arg-type]
            )
        except Exception as e:
            await self._capture_screenshot(page, "navigation_error")
            if "timeout" in str(e).lower():
                raise NavigationTimeout(
                    f"Navigation timeout: {request.url}",
                    url=request.url,
                    cause=e,
                ) from e
            raise BrowserError(f"Browser error: {e}", url=request.url, cause=e) from e

        if response is None:
            raise NavigationTimeout(f"No response from {request.url}", url=request.url)

        status_code = response.status
        if status_code in BLOCKED_STATUS_CODES:
            await self._capture_screenshot(page, "blocked")
            raise PageBlocked(
                f"Request blocked with status {status_code}",
                url=request.url,
                status_code=status_code,
            )

        return FetchResult(
            url=request.url,
            final_url=page.url,
            status_code=status_code,
            html=await page.content(),
            elapsed_ms=(time.monotonic() - started) * 1000,
        )

    # =========================================================================
    # Actions
    # =========================================================================

    async def click_via_script(self, selector: str) -> ActionResult:
        """Click from inside the page, bypassing overlays that eat pointer events."""
        page = await self._get_page()
        try:
            clicked = await page.evaluate(
                """(sel) => {
                    const el = document.querySelector(sel);
                    if (!el) return false;
                    el.click();
                    return true;
                }""",
                selector,
            )
        except Exception as e:
            shot = await self._capture_screenshot(page, "click_error")
            return ActionResult.failed("click", str(e), selector, shot)
        if not clicked:
            return ActionResult.failed("click", "element not found", selector)
        return ActionResult.ok("click", selector)

    async def select_option(
        self,
        selector: str,
        value: str | None = None,
        label: str | None = None,
        timeout_ms: int | None = None,
    ) -> ActionResult:
        """Select an option from a dropdown by value or label."""
        page = await self._get_page()
        try:
            if value is not None:
                await page.select_option(selector, value=value, timeout=timeout_ms or self.timeout_ms)
            elif label is not None:
                await page.select_option(selector, label=label, timeout=timeout_ms or self.timeout_ms)
            else:
                raise ValueError("Must provide value or label")
            return ActionResult.ok("select", selector)
        except Exception as e:
            shot = await self._capture_screenshot(page, "select_error")
            return ActionResult.failed("select", str(e), selector, shot)

    async def type_text(
        self,
        selector: str,
        text: str,
        delay_ms: int = 100,
        timeout_ms: int | None = None,
    ) -> ActionResult:
        """Replace an input's value by typing it key by key.

        Masked PrimeFaces inputs ignore values assigned programmatically.
        """
        page = await self._get_page()
        try:
            locator = page.locator(selector).first
            await locator.wait_for(state="visible", timeout=timeout_ms or self.timeout_ms)
            await locator.focus()
            await page.keyboard.press("Control+A")
            await page.keyboard.press("Backspace")
            await page.keyboard.type(text, delay=delay_ms)
            return ActionResult.ok("type", selector)
        except Exception as e:
            shot = await self._capture_screenshot(page, "type_error")
            return ActionResult.failed("type", str(e), selector, shot)

    async def input_value(self, selector: str) -> str | None:
        """Current value of an input or select, or None if it isn't there."""
        page = await self._get_page()
        try:
            return await page.eval_on_selector(selector, "(el) => el.value")
        except Exception:
            return None

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        page = await self._get_page()
        return await page.evaluate(expression, arg)

    # =========================================================================
    # Waits
    # =========================================================================

    async def wait_for_selector(
        self,
        selector: str,
        state: str = "visible",
        timeout_ms: int | None = None,
    ) -> bool:
        """Wait for element to appear. Returns False on timeout."""
        page = await self._get_page()
        try:
            await page.wait_for_selector(selector, state=state, timeout=timeout_ms or self.timeout_ms)  # type: ignore[arg-type]
            return True
        except Exception:
            return False

    async def wait_for_function(
        self,
        expression: str,
        arg: Any = None,
        timeout_ms: int | None = None,
    ) -> bool:
        """Wait for a JS predicate to become truthy. Returns False on timeout."""
        page = await self._get_page()
        try:
            await page.wait_for_function(expression, arg=arg, timeout=timeout_ms or self.timeout_ms)
            return True
        except Exception:
            return False

    async def pause(self, ms: int) -> None:
        if ms <= 0:
            return
        page = await self._get_page()
        await page.wait_for_timeout(ms)

    async def get_page_content(self) -> str:
        page = await self._get_page()
        return await page.content()

    async def get_page_url(self) -> str:
        page = await self._get_page()
        return page.url
