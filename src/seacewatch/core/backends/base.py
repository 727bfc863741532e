"""
Backend base classes, action results and the browser error taxonomy.

Everything here is importable without Playwright installed, so page-object
fakes and tests share the same types as the real browser backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RequestSpec:
    """Specification for a page load."""

    url: str
    timeout: float = 90.0
    wait_until: str = "networkidle"

    # Metadata for logging/debugging
    job_id: str | None = None
    page_type: str | None = None  # "search", "results"


@dataclass
class FetchResult:
    """Result of a page load."""

    url: str
    final_url: str
    status_code: int
    html: str
    elapsed_ms: float
    fetched_at: datetime = field(default_factory=_utcnow)
    retry_count: int = 0

    @property
    def ok(self) -> bool:
        """Check if the load succeeded (2xx status)."""
        return 200 <= self.status_code < 300


@dataclass
class ActionResult:
    """Result of a single browser action.

    Ordinary failures (element missing, click intercepted) are reported
    here instead of raised, so callers decide what is fatal.
    """

    success: bool
    action: str
    selector: str | None = None
    error: str | None = None
    screenshot_path: str | None = None

    @classmethod
    def ok(cls, action: str, selector: str | None = None) -> ActionResult:
        return cls(success=True, action=action, selector=selector)

    @classmethod
    def failed(
        cls,
        action: str,
        error: str,
        selector: str | None = None,
        screenshot_path: str | None = None,
    ) -> ActionResult:
        return cls(
            success=False,
            action=action,
            selector=selector,
            error=error,
            screenshot_path=screenshot_path,
        )


class Backend(ABC):
    """Abstract base class for page-loading backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Load a URL and return the rendered document.

        Raises:
            BackendError: On unrecoverable failure
        """

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> Backend:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# =============================================================================
# Errors
# =============================================================================


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class BrowserError(BackendError):
    """Base exception for browser errors."""


class NavigationTimeout(BrowserError):
    """Page didn't load, or pagination could not move forward."""


class ResultsTimeout(BrowserError):
    """The results table never appeared after submitting the search."""


class ElementNotFound(BrowserError):
    """Selector didn't match any element."""


class ActionFailed(BrowserError):
    """Click/fill/submit failed."""


class PageBlocked(BrowserError):
    """Bot detection or access denied."""
