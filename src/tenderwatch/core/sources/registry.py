"""Static registry mapping source kinds to adapter classes."""

from __future__ import annotations

from typing import Any, Callable

from ..config.models import SourceConfig, SourceKind
from .base import TenderSource
from .json_feed import JsonFeedSource
from .nsw_etendering import NswETenderingSource
from .ocds import OcdsReleaseSource

SOURCE_TYPES: dict[SourceKind, Callable[..., TenderSource]] = {
    SourceKind.OCDS: OcdsReleaseSource,
    SourceKind.JSON_FEED: JsonFeedSource,
    SourceKind.BROWSER_JSON: NswETenderingSource,
}


def build_source(config: SourceConfig, **options: Any) -> TenderSource:
    """Instantiate the adapter for one source configuration."""
    try:
        factory = SOURCE_TYPES[config.kind]
    except KeyError:
        raise ValueError(f"Unsupported source kind: {config.kind}") from None
    return factory(config, **options)


def build_sources(configs: list[SourceConfig]) -> list[TenderSource]:
    """Adapters for every enabled source, in configuration order."""
    return [build_source(config) for config in configs if config.enabled]
