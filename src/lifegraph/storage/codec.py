"""Text encoding of item fields at the storage boundary.

Structured fields are stored as canonical JSON and timestamps as fixed-width
UTC strings, so the ``timestamp`` column sorts lexicographically in time
order.
"""

import json
from datetime import datetime, timezone

from ..items import ItemKind, JSONValue, Kind, OtherKind, ensure_utc
from .base import SerializationError

OTHER_KIND_KEY = "other"


def encode_json(value: JSONValue) -> str:
    """Serialize a JSON-like value to canonical text.

    Raises:
        SerializationError: If the value is not JSON-compatible, including
            maps with non-string keys.
    """
    _check_keys(value)
    try:
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Value is not JSON-serializable: {e}") from e


def _check_keys(value: JSONValue) -> None:
    """Reject map keys that json would silently coerce to strings."""
    if isinstance(value, dict):
        for key, child in value.items():
            if not isinstance(key, str):
                raise SerializationError(f"Map key {key!r} is not a string")
            _check_keys(child)
    elif isinstance(value, (list, tuple)):
        for child in value:
            _check_keys(child)


def decode_json(text: str) -> JSONValue:
    """Parse canonical JSON text. Raises ValueError on malformed input."""
    return json.loads(text)


def encode_kind(kind: Kind) -> str:
    """Encode a kind: ``"message"`` for known kinds, ``{"other": tag}`` otherwise."""
    if isinstance(kind, ItemKind):
        return encode_json(kind.value)
    if isinstance(kind, OtherKind):
        return encode_json({OTHER_KIND_KEY: kind.tag})
    raise SerializationError(f"Unsupported item kind: {kind!r}")


def decode_kind(text: str) -> Kind:
    """Decode a stored kind.

    Raises:
        ValueError: If the text is not a valid encoded kind.
    """
    value = json.loads(text)
    if isinstance(value, str):
        return ItemKind(value)
    if (
        isinstance(value, dict)
        and len(value) == 1
        and isinstance(value.get(OTHER_KIND_KEY), str)
    ):
        return OtherKind(value[OTHER_KIND_KEY])
    raise ValueError(f"Not an encoded item kind: {text!r}")


def format_timestamp(dt: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.ffffffZ`` in UTC."""
    naive = ensure_utc(dt).replace(tzinfo=None)
    return naive.isoformat(timespec="microseconds") + "Z"


def parse_timestamp(text: str) -> datetime:
    """Parse a stored timestamp back to an aware UTC datetime.

    Accepts the fixed ``Z`` format and any ISO 8601 string with an offset.

    Raises:
        ValueError: If the text is not a timestamp.
    """
    if not isinstance(text, str):
        raise ValueError(f"Timestamp must be text, got {type(text).__name__}")
    if text.endswith("Z"):
        return datetime.fromisoformat(text[:-1]).replace(tzinfo=timezone.utc)
    return ensure_utc(datetime.fromisoformat(text))
