"""Canonical item model shared by every connector."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

# Arbitrary JSON-like value: None, bool, int, float, str, list or dict.
JSONValue = Any


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive datetimes are assumed to already be in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class ItemKind(str, Enum):
    """Known item kinds in the LifeGraph ontology."""

    PERSON = "person"
    ORGANIZATION = "organization"
    TRANSACTION = "transaction"
    MESSAGE = "message"
    FILE = "file"
    METRIC = "metric"
    EVENT = "event"


@dataclass(frozen=True)
class OtherKind:
    """Open kind for sources whose records fit no known kind.

    Attributes:
        tag: Free-form classification supplied by the connector.
    """

    tag: str


Kind = Union[ItemKind, OtherKind]

PARSE_ERROR_KIND = OtherKind("parse_error")


def kind_from_tag(tag: str) -> Kind:
    """Map a string tag to a known kind, or wrap it in OtherKind."""
    try:
        return ItemKind(tag)
    except ValueError:
        return OtherKind(tag)


def new_item_id() -> str:
    """Generate a fresh vault identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Item:
    """A normalized unit of data within the vault.

    Items are immutable. Re-ingesting a changed source record means building
    a new Item that carries the same ``id``; storage then replaces the old
    row entirely.

    Attributes:
        id: Vault identifier, assigned at creation and never reused.
        source_id: Identifier of the record in its origin system.
        connector_id: Identifier of the connector that produced the item.
        kind: Known ItemKind or an OtherKind tag.
        timestamp: When the underlying fact happened (UTC).
        ingested_at: When the vault first constructed this item (UTC).
        properties: Kind-specific attributes, any JSON-compatible value.
        raw_payload: Verbatim source record for traceability, or None.
    """

    id: str
    source_id: str
    connector_id: str
    kind: Kind
    timestamp: datetime
    ingested_at: datetime
    properties: JSONValue = field(default_factory=dict)
    raw_payload: JSONValue = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Item id cannot be empty")
        if not isinstance(self.kind, (ItemKind, OtherKind)):
            raise TypeError(f"Invalid item kind: {self.kind!r}")
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "ingested_at", ensure_utc(self.ingested_at))

    @classmethod
    def new(
        cls,
        source_id: str,
        connector_id: str,
        kind: Kind,
        properties: JSONValue,
        *,
        timestamp: datetime | None = None,
        raw_payload: JSONValue = None,
    ) -> Item:
        """Build a new item with a fresh id.

        Both ``timestamp`` and ``ingested_at`` default to now. Connectors
        that know when the fact actually happened pass ``timestamp``.

        Args:
            source_id: Identifier of the record in its origin system.
            connector_id: Identifier of the producing connector.
            kind: Item classification.
            properties: Kind-specific attributes.
            timestamp: Authoritative source time, if the source has one.
            raw_payload: Original source record, if worth keeping.

        Returns:
            The new Item.
        """
        now = utc_now()
        return cls(
            id=new_item_id(),
            source_id=source_id,
            connector_id=connector_id,
            kind=kind,
            timestamp=timestamp if timestamp is not None else now,
            ingested_at=now,
            properties=properties,
            raw_payload=raw_payload,
        )

    def with_timestamp(self, timestamp: datetime) -> Item:
        """Return a copy carrying the source-supplied timestamp."""
        return replace(self, timestamp=timestamp)

    def with_properties(self, properties: JSONValue) -> Item:
        """Return a replacement value with new properties and the same id."""
        return replace(self, properties=properties)

    def with_raw_payload(self, raw_payload: JSONValue) -> Item:
        """Return a copy that keeps the original source record."""
        return replace(self, raw_payload=raw_payload)
