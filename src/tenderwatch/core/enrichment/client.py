"""
Language model client for tender enrichment.

Thin wrapper over the Anthropic Messages API that returns the first text
block of a reply. SDK-level retries are disabled: a failed call is final
for that tender.
"""

from __future__ import annotations

import logging

import anthropic

from ..config.models import EnrichmentConfig

logger = logging.getLogger(__name__)


class EnrichmentError(Exception):
    """Model call failed or returned something unusable."""

    def __init__(self, message: str, tender_id: int | None = None):
        super().__init__(message)
        self.tender_id = tender_id


class EnrichmentParseError(EnrichmentError):
    """Model reply carried no usable JSON object."""


class LLMClient:
    """Async Anthropic client bound to one model configuration."""

    def __init__(self, config: EnrichmentConfig | None = None):
        self.config = config or EnrichmentConfig()
        self._client: anthropic.AsyncAnthropic | None = None

    def _ensure_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.config.api_key or None,
                base_url=self.config.base_url or None,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(self, prompt: str) -> str:
        """Send one user prompt and return the reply text.

        Raises:
            EnrichmentError: The reply's first block is not text
            anthropic.AnthropicError: Transport, auth or API failures
        """
        client = self._ensure_client()
        message = await client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

        if not message.content:
            raise EnrichmentError("Model returned an empty reply")

        block = message.content[0]
        if block.type != "text":
            raise EnrichmentError(f"Unexpected reply block type: {block.type}")

        return block.text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
