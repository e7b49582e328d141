"""Incremental sync engine: mapping, orchestration and run snapshots."""

from .factory import build_sync_service
from .mapper import TransactionMapper
from .service import SyncConfig, SyncService

__all__ = ["SyncConfig", "SyncService", "TransactionMapper", "build_sync_service"]
