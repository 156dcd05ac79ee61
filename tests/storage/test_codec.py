"""Tests for storage field encoding."""

from datetime import datetime, timedelta, timezone

import pytest

from lifegraph.items import ItemKind, OtherKind
from lifegraph.storage import SerializationError
from lifegraph.storage.codec import (
    decode_json,
    decode_kind,
    encode_json,
    encode_kind,
    format_timestamp,
    parse_timestamp,
)


class TestKindEncoding:
    """Tests for kind encoding."""

    def test_known_kind(self):
        assert encode_kind(ItemKind.PERSON) == '"person"'

    def test_other_kind(self):
        assert encode_kind(OtherKind("recipe")) == '{"other":"recipe"}'

    def test_decode_known(self):
        assert decode_kind('"message"') is ItemKind.MESSAGE

    def test_decode_other(self):
        assert decode_kind('{"other":"recipe"}') == OtherKind("recipe")

    @pytest.mark.parametrize(
        "text",
        ["not json", '"unicorn"', "42", '{"other": 1}', '{"other":"a","x":1}', "[]"],
    )
    def test_decode_invalid(self, text):
        with pytest.raises(ValueError):
            decode_kind(text)


class TestJsonEncoding:
    """Tests for canonical JSON."""

    def test_sorted_and_compact(self):
        assert encode_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_keeps_unicode(self):
        assert encode_json({"name": "José"}) == '{"name":"José"}'

    def test_null(self):
        assert encode_json(None) == "null"

    def test_unserializable_raises(self):
        with pytest.raises(SerializationError):
            encode_json({"value": object()})

    def test_nan_rejected(self):
        with pytest.raises(SerializationError):
            encode_json({"value": float("nan")})

    @pytest.mark.parametrize("value", [{1: "one"}, {"a": [{None: 1}]}, [{"ok": {2.5: "x"}}]])
    def test_non_string_keys_rejected(self, value):
        with pytest.raises(SerializationError, match="not a string"):
            encode_json(value)

    def test_nested_value(self):
        value = {"a": {"b": [1, 2.5, None, True, "x"]}}
        assert decode_json(encode_json(value)) == value


class TestTimestamps:
    """Tests for timestamp text format."""

    def test_fixed_format(self):
        dt = datetime(2024, 5, 6, 7, 8, 9, 123, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2024-05-06T07:08:09.000123Z"

    def test_whole_seconds_keep_fraction(self):
        dt = datetime(2024, 5, 6, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2024-05-06T00:00:00.000000Z"

    def test_converts_to_utc(self):
        dt = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(dt) == "2024-01-01T00:00:00.000000Z"

    def test_parse_round_trip(self):
        dt = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
        assert parse_timestamp(format_timestamp(dt)) == dt

    def test_parse_offset_format(self):
        parsed = parse_timestamp("2024-01-01T02:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_parse_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    def test_parse_none(self):
        with pytest.raises(ValueError):
            parse_timestamp(None)  # type: ignore[arg-type]

    def test_lexicographic_order_matches_time(self):
        earlier = datetime(2023, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)
        later = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert format_timestamp(earlier) < format_timestamp(later)
