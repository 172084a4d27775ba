"""Tender source adapters."""

from .base import TenderSource
from .json_feed import JsonFeedSource, map_feed_record
from .nsw_etendering import NswETenderingSource, map_nsw_rft
from .ocds import OcdsReleaseSource, map_ocds_release
from .registry import SOURCE_TYPES, build_source, build_sources

__all__ = [
    "TenderSource",
    "JsonFeedSource",
    "NswETenderingSource",
    "OcdsReleaseSource",
    "map_feed_record",
    "map_nsw_rft",
    "map_ocds_release",
    "SOURCE_TYPES",
    "build_source",
    "build_sources",
]
