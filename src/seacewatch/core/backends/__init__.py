"""Browser backend and the error types shared by page objects."""

from .base import (
    ActionFailed,
    ActionResult,
    Backend,
    BackendError,
    BrowserError,
    ElementNotFound,
    FetchResult,
    NavigationTimeout,
    PageBlocked,
    RequestSpec,
    ResultsTimeout,
)
from .playwright_backend import PlaywrightBackend

__all__ = [
    # Base classes
    "Backend",
    "RequestSpec",
    "FetchResult",
    "ActionResult",
    # Errors
    "BackendError",
    "BrowserError",
    "NavigationTimeout",
    "ResultsTimeout",
    "ElementNotFound",
    "ActionFailed",
    "PageBlocked",
    # Playwright backend
    "PlaywrightBackend",
]
