"""Storage engine for vault items."""

from .base import SerializationError, Storage, StorageError
from .store import SQLiteStorage
from .sync_state import SyncState, SyncStateStore

__all__ = [
    "SQLiteStorage",
    "SerializationError",
    "Storage",
    "StorageError",
    "SyncState",
    "SyncStateStore",
]
