"""Canonical item model."""

from .models import (
    PARSE_ERROR_KIND,
    Item,
    ItemKind,
    JSONValue,
    Kind,
    OtherKind,
    ensure_utc,
    kind_from_tag,
    new_item_id,
    utc_now,
)

__all__ = [
    "PARSE_ERROR_KIND",
    "Item",
    "ItemKind",
    "JSONValue",
    "Kind",
    "OtherKind",
    "ensure_utc",
    "kind_from_tag",
    "new_item_id",
    "utc_now",
]
