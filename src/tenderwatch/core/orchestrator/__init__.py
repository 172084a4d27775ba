"""Sync orchestration."""

from .runner import SyncResult, TenderSync, build_sync, sync_all_tenders, test_connections

__all__ = [
    "SyncResult",
    "TenderSync",
    "build_sync",
    "sync_all_tenders",
    "test_connections",
]
