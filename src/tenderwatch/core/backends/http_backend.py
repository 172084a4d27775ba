"""
HTTP Backend implementation using httpx.

Provides async HTTP fetching with:
- Configurable headers
- Automatic retry with exponential backoff for transport errors
- Rate limit and anti-bot block detection
"""

from __future__ import annotations

import time

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import (
    Backend,
    BlockedError,
    FetchError,
    FetchResult,
    RateLimitError,
    RequestSpec,
)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Status codes that indicate blocking
BLOCKED_STATUS_CODES = {403, 406, 418, 451}

BLOCKED_INDICATORS = (
    "access denied",
    "captcha",
    "challenge-platform",
    "cf-browser-verification",
    "please verify you are human",
    "unusual traffic",
)


class HttpBackend(Backend):
    """HTTP backend using httpx for async requests.

    Features:
    - Persistent connection pooling
    - Automatic redirect following
    - Retry with exponential backoff
    - Rate limit detection
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 2.0,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP backend.

        Args:
            timeout: Default request timeout in seconds
            max_retries: Maximum attempts per request
            retry_backoff: Exponential backoff multiplier
            user_agent: Custom user agent
            default_headers: Default headers for all requests
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.transport = transport

        self.default_headers = {
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
            "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            "Accept-Language": "en-AU,en;q=0.9",
            **(default_headers or {}),
        }

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers=self.default_headers,
                transport=self.transport,
            )
        return self._client

    def _check_blocked(self, response: httpx.Response) -> None:
        """Raise BlockedError when the response looks like an anti-bot page."""
        if response.status_code in BLOCKED_STATUS_CODES:
            raise BlockedError(
                f"Request blocked with status {response.status_code}",
                url=str(response.url),
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if "html" not in content_type:
            return

        text = response.text
        if len(text) >= 50000:
            return
        lowered = text.lower()
        for indicator in BLOCKED_INDICATORS:
            if indicator in lowered:
                raise BlockedError(
                    f"Possible anti-bot block detected: '{indicator}' in response",
                    url=str(response.url),
                    status_code=response.status_code,
                )

    def _check_rate_limit(self, response: httpx.Response) -> None:
        if response.status_code != 429:
            return

        retry_seconds = None
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                retry_seconds = float(retry_after)
            except ValueError:
                retry_seconds = None

        raise RateLimitError(
            "Rate limit exceeded",
            url=str(response.url),
            retry_after=retry_seconds,
        )

    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Fetch a URL with automatic retry.

        Non-2xx responses are returned, not raised; callers check ``ok``.

        Raises:
            BlockedError: Anti-bot block detected (not retried)
            RateLimitError: Still rate limited after the final attempt
            FetchError: Transport failure after the final attempt
        """
        client = self._ensure_client()
        headers = {**self.default_headers, **request.headers}
        timeout = request.timeout or self.timeout
        retry_count = 0

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=self.retry_backoff, min=1, max=30),
                retry=retry_if_exception_type((httpx.TransportError, RateLimitError)),
                reraise=True,
            ):
                with attempt:
                    retry_count = attempt.retry_state.attempt_number - 1
                    started = time.perf_counter()

                    response = await client.request(
                        request.method.upper(),
                        request.url,
                        headers=headers,
                        params=request.params or None,
                        timeout=timeout,
                        follow_redirects=request.follow_redirects,
                    )

                    self._check_rate_limit(response)
                    self._check_blocked(response)

                    return FetchResult(
                        url=request.url,
                        final_url=str(response.url),
                        status_code=response.status_code,
                        text=response.text,
                        headers=dict(response.headers),
                        elapsed_ms=(time.perf_counter() - started) * 1000,
                        retry_count=retry_count,
                    )

        except (BlockedError, RateLimitError):
            raise
        except httpx.TransportError as e:
            raise FetchError(
                f"Transport error after {retry_count + 1} attempts: {e}",
                url=request.url,
                cause=e,
            ) from e

        raise FetchError("No attempt was made", url=request.url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
