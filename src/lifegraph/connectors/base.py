"""Base connector interface."""

from abc import ABC, abstractmethod
from datetime import datetime

from ..items import Item


class ConnectorError(Exception):
    """Recoverable failure raised by a connector.

    The orchestrator reports it and treats the connector's contribution to
    the current run as empty.
    """

    def __init__(self, message: str, connector_id: str | None = None) -> None:
        super().__init__(message)
        self.connector_id = connector_id


class ConnectorAuthError(ConnectorError):
    """Authentication against the source failed."""


class ConnectorUnavailableError(ConnectorError):
    """The source could not be reached or did not answer in time."""


class MalformedPayloadError(ConnectorError):
    """The source returned a record that could not be normalized."""


class Connector(ABC):
    """Base interface for all data connectors."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable identifier that tags every item this connector produces."""
        ...

    @abstractmethod
    async def init(self) -> None:
        """Authenticate or connect. Safe to call more than once."""
        ...

    @abstractmethod
    async def full_sync(self) -> list[Item]:
        """Return the complete current state of the source."""
        ...

    @abstractmethod
    async def incremental_sync(self, since: datetime) -> list[Item]:
        """Return items changed or created at or after ``since``.

        Connectors that cannot sync partially may return an empty list, and
        must say so in their documentation.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
