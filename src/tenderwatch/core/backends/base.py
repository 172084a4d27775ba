"""
Backend base classes and data structures.

Defines the interface contract for the fetch backends source adapters use.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..normalize.canonical import utcnow


@dataclass
class RequestSpec:
    """Parameters for a single outbound request."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    follow_redirects: bool = True

    # Metadata for logging
    source_name: str | None = None


@dataclass
class FetchResult:
    """Result of a fetch operation."""

    url: str
    final_url: str  # After redirects
    status_code: int
    text: str
    headers: dict[str, str]

    elapsed_ms: float
    fetched_at: datetime = field(default_factory=utcnow)
    retry_count: int = 0

    @property
    def ok(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        """Media type without parameters, lower-cased."""
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value.split(";", 1)[0].strip().lower()
        return ""

    @property
    def is_json(self) -> bool:
        media = self.content_type
        return media == "application/json" or media.endswith("+json")

    def json(self) -> Any:
        """Decode the body, keeping non-integer numbers as exact Decimals.

        Raises:
            ValueError: If the body is not valid JSON
        """
        return json.loads(self.text, parse_float=Decimal)


class Backend(ABC):
    """Abstract base class for fetch backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL and return the response.

        Args:
            request: Request parameters

        Returns:
            FetchResult with response data

        Raises:
            BackendError: On unrecoverable fetch failure
        """

    async def close(self) -> None:
        """Clean up backend resources."""

    async def __aenter__(self) -> "Backend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


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


class FetchError(BackendError):
    """Error during fetch operation."""


class RateLimitError(BackendError):
    """Rate limit hit (429 or similar)."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, url, status_code=429)
        self.retry_after = retry_after


class BlockedError(BackendError):
    """Request blocked by anti-bot measures."""
