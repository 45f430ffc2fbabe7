"""
Slice key codec - text encoding of slices and slice sets.

Checkpoint records must survive a process restart, so slices are written as
text and parsed back into structurally equal :class:`Slice` values. JSON alone
cannot say what the keys *were* (a timestamp and a string look the same), so
every record starts with a declared type tag::

    int__{"begin": 0, "end": 128}
    datetime__[{"begin": "2026-01-01T00:00:00.000000", "end": "2026-01-02T00:00:00.000000"}]

The tag is looked up in a :class:`KeyCodecRegistry`: an explicit table of
``tag -> (python type, to_json, from_json)``. Nothing is resolved by importing
or reflecting on class names found in the file.

Architecture:
    ::

        SliceCodec(tag=None, registry=default_registry)
          ├── encode(slice)        -> "tag__{...}"      one record per line
          ├── decode(text)         -> Slice
          ├── encode_set(slices)   -> "tag__[{...}, ...]"
          └── decode_set(text)     -> set[Slice]

        KeyCodecRegistry
          ├── register(KeyCodec)
          ├── by_tag(tag)
          └── for_value(value)     exact-type lookup, no isinstance walk

Built-in tags: ``int``, ``float``, ``str``, ``decimal``, ``date``,
``datetime``. Datetimes are written with full microsecond precision
(``YYYY-MM-DDTHH:MM:SS.ffffff``, plus a UTC offset when timezone-aware),
so keys taken from ``datetime.now()`` survive a round trip. Millisecond
records are still accepted on decode.

Examples:
    >>> codec = SliceCodec()
    >>> codec.encode(Slice(0, 128))
    'int__{"begin": 0, "end": 128}'
    >>> codec.decode('int__{"begin": 0, "end": 128}')
    Slice(begin=0, end=128)

Tags:
    codec, serialization, checkpoint, slice, slicer
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from slicer.core.errors import SliceCodecError
from slicer.slices.models import Slice

TYPE_SEPARATOR = "__"


@dataclass(frozen=True, slots=True)
class KeyCodec:
    """How one key type is written to and read from JSON."""

    tag: str
    python_type: type
    to_json: Callable[[Any], Any]
    from_json: Callable[[Any], Any]


def _format_datetime(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class KeyCodecRegistry:
    """Registry of key codecs addressed by declared tag."""

    def __init__(self, codecs: Iterable[KeyCodec] = ()) -> None:
        self._by_tag: dict[str, KeyCodec] = {}
        self._by_type: dict[type, KeyCodec] = {}
        for codec in codecs:
            self.register(codec)

    def register(self, codec: KeyCodec) -> None:
        if TYPE_SEPARATOR in codec.tag:
            raise SliceCodecError(f"Tag must not contain {TYPE_SEPARATOR!r}: {codec.tag}")
        self._by_tag[codec.tag] = codec
        self._by_type[codec.python_type] = codec

    def by_tag(self, tag: str) -> KeyCodec:
        try:
            return self._by_tag[tag]
        except KeyError:
            raise SliceCodecError(f"Unknown slice key tag: {tag!r}") from None

    def for_value(self, value: Any) -> KeyCodec:
        try:
            return self._by_type[type(value)]
        except KeyError:
            raise SliceCodecError(
                f"No codec registered for slice key type {type(value).__name__}"
            ) from None

    @property
    def tags(self) -> list[str]:
        return sorted(self._by_tag)


def _builtin_codecs() -> list[KeyCodec]:
    return [
        KeyCodec("int", int, int, int),
        KeyCodec("float", float, float, float),
        KeyCodec("str", str, str, str),
        KeyCodec("decimal", Decimal, str, Decimal),
        KeyCodec("date", date, date.isoformat, date.fromisoformat),
        KeyCodec("datetime", datetime, _format_datetime, datetime.fromisoformat),
    ]


default_registry = KeyCodecRegistry(_builtin_codecs())


class SliceCodec:
    """Encodes slices to tagged text and back.

    Args:
        tag: Fixed key tag. When ``None`` the tag is taken from the key type
            of the slice being encoded.
        registry: Codec table to resolve tags against.
    """

    def __init__(self, tag: str | None = None, registry: KeyCodecRegistry | None = None):
        self._registry = registry or default_registry
        self._tag = tag
        if tag is not None:
            self._registry.by_tag(tag)

    def _key_codec(self, slice_: Slice) -> KeyCodec:
        if slice_.begin is None or slice_.end is None:
            raise SliceCodecError(f"Slice bounds must not be None: {slice_!r}")
        if self._tag is not None:
            return self._registry.by_tag(self._tag)
        return self._registry.for_value(slice_.begin)

    @staticmethod
    def _split(text: str) -> tuple[str, str]:
        tag, sep, payload = text.strip().partition(TYPE_SEPARATOR)
        if not sep or not tag or not payload:
            raise SliceCodecError(f"Slice record is missing its type tag: {text!r}")
        return tag, payload

    @staticmethod
    def _to_record(key_codec: KeyCodec, slice_: Slice) -> dict[str, Any]:
        return {"begin": key_codec.to_json(slice_.begin), "end": key_codec.to_json(slice_.end)}

    @staticmethod
    def _from_record(key_codec: KeyCodec, record: Any) -> Slice:
        try:
            return Slice(key_codec.from_json(record["begin"]), key_codec.from_json(record["end"]))
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise SliceCodecError(f"Malformed slice record: {record!r}", cause=e) from e

    def encode(self, slice_: Slice) -> str:
        key_codec = self._key_codec(slice_)
        return key_codec.tag + TYPE_SEPARATOR + json.dumps(self._to_record(key_codec, slice_))

    def decode(self, text: str) -> Slice:
        tag, payload = self._split(text)
        key_codec = self._registry.by_tag(tag)
        try:
            record = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SliceCodecError(f"Slice record is not valid JSON: {text!r}", cause=e) from e
        return self._from_record(key_codec, record)

    def encode_set(self, slices: Iterable[Slice]) -> str:
        slices = list(slices)
        if not slices:
            raise SliceCodecError("Cannot encode an empty slice set")
        key_codec = self._key_codec(slices[0])
        records = [self._to_record(key_codec, s) for s in slices]
        return key_codec.tag + TYPE_SEPARATOR + json.dumps(records)

    def decode_set(self, text: str) -> set[Slice]:
        tag, payload = self._split(text)
        key_codec = self._registry.by_tag(tag)
        try:
            records = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SliceCodecError("Slice set record is not valid JSON", cause=e) from e
        if not isinstance(records, list):
            raise SliceCodecError(f"Slice set record must be a JSON array, got {type(records).__name__}")
        return {self._from_record(key_codec, record) for record in records}


__all__ = [
    "TYPE_SEPARATOR",
    "KeyCodec",
    "KeyCodecRegistry",
    "SliceCodec",
    "default_registry",
]
