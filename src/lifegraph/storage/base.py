"""Storage interface and errors."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from ..items import Item


class StorageError(Exception):
    """Open, transaction or constraint failure in the storage engine."""


class SerializationError(StorageError):
    """An item field could not be encoded for storage."""


class Storage(ABC):
    """Durable persistence of items keyed by id."""

    @abstractmethod
    def init(self) -> None:
        """Create the schema if absent. Never destroys existing data."""
        ...

    @abstractmethod
    def save_items(self, items: Iterable[Item]) -> int:
        """Upsert a batch of items in one transaction.

        Returns:
            Number of items written.
        """
        ...

    @abstractmethod
    def get_all_items(self) -> list[Item]:
        """Return every stored item, most recent ``timestamp`` first."""
        ...

    def save_item(self, item: Item) -> None:
        """Persist a single item."""
        self.save_items([item])

    def close(self) -> None:
        """Release any resources held by the storage."""
