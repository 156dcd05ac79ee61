"""LifeGraph: a personal data vault fed by pluggable connectors."""

from .connectors import Connector, ConnectorError, MockConnector
from .items import Item, ItemKind, OtherKind
from .storage import SQLiteStorage, Storage, StorageError
from .vault import SyncOrchestrator

__version__ = "0.1.0"

__all__ = [
    "Connector",
    "ConnectorError",
    "Item",
    "ItemKind",
    "MockConnector",
    "OtherKind",
    "SQLiteStorage",
    "Storage",
    "StorageError",
    "SyncOrchestrator",
]
