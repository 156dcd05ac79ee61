"""Mock connector used to exercise the ingestion pipeline offline."""

import logging
from datetime import datetime

from ..items import Item, ItemKind
from .base import Connector

logger = logging.getLogger(__name__)

MOCK_SOURCE_ID = "mock_msg_1"


class MockConnector(Connector):
    """Connector that emits one fixed message on full sync.

    Incremental sync is not supported and always returns an empty list.
    """

    def __init__(self, connector_id: str = "mock") -> None:
        if not connector_id:
            raise ValueError("connector_id cannot be empty")
        self._id = connector_id
        self.initialized = False

    @property
    def id(self) -> str:
        return self._id

    async def init(self) -> None:
        self.initialized = True
        logger.info("MockConnector[%s] initialized", self._id)

    async def full_sync(self) -> list[Item]:
        item = Item.new(
            MOCK_SOURCE_ID,
            self._id,
            ItemKind.MESSAGE,
            {
                "subject": "Hello World",
                "body": "This is a test message from the mock connector.",
            },
        )
        return [item]

    async def incremental_sync(self, since: datetime) -> list[Item]:
        return []
