"""Backend implementations for fetching source payloads."""

from .base import (
    Backend,
    BackendError,
    BlockedError,
    FetchError,
    FetchResult,
    RateLimitError,
    RequestSpec,
)
from .http_backend import HttpBackend
from .playwright_backend import (
    BrowserError,
    NavigationTimeout,
    PageBlocked,
    PlaywrightBackend,
)

__all__ = [
    # Base classes
    "Backend",
    "RequestSpec",
    "FetchResult",
    # Base errors
    "BackendError",
    "FetchError",
    "RateLimitError",
    "BlockedError",
    # HTTP backend
    "HttpBackend",
    # Playwright backend
    "PlaywrightBackend",
    "BrowserError",
    "NavigationTimeout",
    "PageBlocked",
]
