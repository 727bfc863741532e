"""
Tests for browser lifecycle in the Playwright backend.

The Playwright driver is replaced with in-memory objects, so no browser is
launched.
"""

import pytest

from seacewatch.core.backends.playwright_backend import PlaywrightBackend


class FakeBrowser:
    def __init__(self, connected: bool = True, close_error: Exception | None = None):
        self.connected = connected
        self.close_error = close_error
        self.closed = False

    def is_connected(self) -> bool:
        return self.connected

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeLauncher:
    def __init__(self):
        self.launches: list[dict] = []

    async def launch(self, **options) -> FakeBrowser:
        self.launches.append(options)
        return FakeBrowser()


class FakeDriver:
    def __init__(self):
        self.chromium = FakeLauncher()
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


class FakePlaywrightManager:
    def __init__(self, started: list[FakeDriver]):
        self.started = started

    async def start(self) -> FakeDriver:
        driver = FakeDriver()
        self.started.append(driver)
        return driver


@pytest.fixture
def started_drivers(monkeypatch) -> list[FakeDriver]:
    started: list[FakeDriver] = []
    monkeypatch.setattr(
        "playwright.async_api.async_playwright",
        lambda: FakePlaywrightManager(started),
    )
    return started


class TestBrowserLifecycle:
    @pytest.mark.asyncio
    async def test_first_launch(self, started_drivers, monkeypatch):
        monkeypatch.delenv("CHROME_BIN", raising=False)
        backend = PlaywrightBackend(launch_args=["--no-sandbox"])

        await backend._ensure_browser()

        assert len(started_drivers) == 1
        assert started_drivers[0].chromium.launches == [{"headless": True, "args": ["--no-sandbox"]}]
        assert backend.is_open

    @pytest.mark.asyncio
    async def test_connected_browser_is_reused(self, started_drivers):
        backend = PlaywrightBackend()
        await backend._ensure_browser()
        browser = backend._browser

        await backend._ensure_browser()

        assert len(started_drivers) == 1
        assert backend._browser is browser

    @pytest.mark.asyncio
    async def test_disconnected_browser_releases_old_driver(self, started_drivers):
        backend = PlaywrightBackend()
        old_driver = FakeDriver()
        old_browser = FakeBrowser(connected=False)
        backend._playwright = old_driver
        backend._browser = old_browser

        await backend._ensure_browser()

        assert old_driver.stopped
        assert old_browser.closed
        assert backend._playwright is started_drivers[0]
        assert backend._browser.is_connected()

    @pytest.mark.asyncio
    async def test_relaunch_survives_close_errors(self, started_drivers):
        backend = PlaywrightBackend()
        old_driver = FakeDriver()
        backend._playwright = old_driver
        backend._browser = FakeBrowser(connected=False, close_error=RuntimeError("Target closed"))

        await backend._ensure_browser()

        assert old_driver.stopped
        assert backend._playwright is started_drivers[0]

    @pytest.mark.asyncio
    async def test_close_stops_driver(self, started_drivers):
        backend = PlaywrightBackend()
        await backend._ensure_browser()
        browser = backend._browser

        await backend.close()

        assert browser.closed
        assert started_drivers[0].stopped
        assert not backend.is_open
