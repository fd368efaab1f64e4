"""
Structured value codec: encode(value) -> str, decode(str) -> value.

Wire format is the devalue flattening scheme: a JSON array whose slot 0 is the
root value; arrays and objects hold slot indices instead of values, so shared
and cyclic references survive. Values plain JSON cannot carry use tagged slots
(["Date", iso], ["Set", ...], ["Map", k, v, ...], ["BigInt", digits],
["ArrayBuffer", base64]) or reserved negative indices (NaN, infinities, -0.0).
"""
from __future__ import annotations

import base64
import json
import math
from datetime import datetime, timezone
from typing import Any

from wrangler_bridge.core.errors import CodecError

UNDEFINED = -1
HOLE = -2
NAN = -3
POSITIVE_INFINITY = -4
NEGATIVE_INFINITY = -5
NEGATIVE_ZERO = -6

# Number.MAX_SAFE_INTEGER; anything wider travels as BigInt
MAX_SAFE_INTEGER = 2**53 - 1

MEDIA_TYPE = "application/devalue+json"


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


def _format_date(value: datetime) -> str:
    if value.tzinfo is None or value.utcoffset() is None:
        raise CodecError("Cannot encode a naive datetime; attach a tzinfo")
    value = value.astimezone(timezone.utc)
    timespec = "milliseconds" if value.microsecond % 1000 == 0 else "microseconds"
    return value.isoformat(timespec=timespec).replace("+00:00", "Z")


def _parse_date(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _hashable(value: Any) -> Any:
    """Set members and Map keys: arrays come back as tuples so they can be hashed."""
    if isinstance(value, list):
        return tuple(_hashable(item) for item in value)
    return value


class _Flattener:
    """Assigns every distinct value a slot; slots are JSON fragments."""

    def __init__(self) -> None:
        self.slots: list[str] = []
        self._by_identity: dict[int, int] = {}
        self._by_value: dict[tuple[type, Any], int] = {}
        # keeps encoded containers alive so their ids are not reused mid-encode
        self._alive: list[Any] = []

    def _reserve(self) -> int:
        self.slots.append("")
        return len(self.slots) - 1

    def flatten(self, value: Any) -> int:
        if isinstance(value, float):
            if math.isnan(value):
                return NAN
            if value == math.inf:
                return POSITIVE_INFINITY
            if value == -math.inf:
                return NEGATIVE_INFINITY
            if value == 0 and math.copysign(1.0, value) < 0:
                return NEGATIVE_ZERO

        if value is None or isinstance(value, (bool, int, float, str)):
            key = (type(value), value)
            if key in self._by_value:
                return self._by_value[key]
            index = self._reserve()
            self._by_value[key] = index
            if isinstance(value, int) and not isinstance(value, bool) and abs(value) > MAX_SAFE_INTEGER:
                self.slots[index] = _dumps(["BigInt", str(value)])
            else:
                self.slots[index] = _dumps(value)
            return index

        if id(value) in self._by_identity:
            return self._by_identity[id(value)]
        index = self._reserve()
        self._by_identity[id(value)] = index
        self._alive.append(value)

        if isinstance(value, (bytes, bytearray, memoryview)):
            encoded = base64.b64encode(bytes(value)).decode("ascii")
            self.slots[index] = _dumps(["ArrayBuffer", encoded])
        elif isinstance(value, datetime):
            self.slots[index] = _dumps(["Date", _format_date(value)])
        elif isinstance(value, (list, tuple)):
            self.slots[index] = "[" + ",".join(str(self.flatten(item)) for item in value) + "]"
        elif isinstance(value, (set, frozenset)):
            items = [str(self.flatten(item)) for item in value]
            self.slots[index] = '["Set"' + "".join("," + i for i in items) + "]"
        elif isinstance(value, dict):
            if all(isinstance(k, str) for k in value):
                parts = [f"{_dumps(k)}:{self.flatten(v)}" for k, v in value.items()]
                self.slots[index] = "{" + ",".join(parts) + "}"
            else:
                parts = []
                for k, v in value.items():
                    parts.append(str(self.flatten(k)))
                    parts.append(str(self.flatten(v)))
                self.slots[index] = '["Map"' + "".join("," + p for p in parts) + "]"
        else:
            raise CodecError(f"Cannot encode value of type {type(value).__name__}")
        return index


def encode(value: Any) -> str:
    """Encode a value into its transportable string form."""
    flattener = _Flattener()
    index = flattener.flatten(value)
    if index < 0:
        return str(index)
    return "[" + ",".join(flattener.slots) + "]"


_SPECIALS: dict[int, Any] = {
    UNDEFINED: None,
    HOLE: None,
    NAN: math.nan,
    POSITIVE_INFINITY: math.inf,
    NEGATIVE_INFINITY: -math.inf,
    NEGATIVE_ZERO: -0.0,
}


class _Hydrator:
    def __init__(self, slots: list[Any]) -> None:
        self._slots = slots
        self._hydrated: dict[int, Any] = {}

    def _index(self, raw: Any) -> int:
        if not isinstance(raw, int) or isinstance(raw, bool):
            raise CodecError(f"Invalid slot reference {raw!r}")
        if raw < 0 and raw not in _SPECIALS:
            raise CodecError(f"Invalid special index {raw}")
        if raw >= len(self._slots):
            raise CodecError(f"Slot reference {raw} out of range")
        return raw

    def hydrate(self, raw: Any) -> Any:
        index = self._index(raw)
        if index < 0:
            return _SPECIALS[index]
        if index in self._hydrated:
            return self._hydrated[index]

        slot = self._slots[index]
        if isinstance(slot, dict):
            obj: dict[str, Any] = {}
            self._hydrated[index] = obj
            for key, ref in slot.items():
                obj[key] = self.hydrate(ref)
            return obj
        if isinstance(slot, list):
            if slot and isinstance(slot[0], str):
                return self._hydrate_tagged(index, slot)
            arr: list[Any] = []
            self._hydrated[index] = arr
            for ref in slot:
                arr.append(self.hydrate(ref))
            return arr
        self._hydrated[index] = slot
        return slot

    def _hydrate_tagged(self, index: int, slot: list[Any]) -> Any:
        tag, args = slot[0], slot[1:]
        value: Any
        try:
            if tag == "Date":
                value = _parse_date(args[0])
            elif tag == "BigInt":
                value = int(args[0])
            elif tag == "ArrayBuffer":
                value = base64.b64decode(args[0])
            elif tag == "Object":
                value = args[0]
            elif tag == "Set":
                value = set()
                self._hydrated[index] = value
                for ref in args:
                    value.add(_hashable(self.hydrate(ref)))
                return value
            elif tag in ("Map", "null"):
                value = {}
                self._hydrated[index] = value
                for key_ref, value_ref in zip(args[0::2], args[1::2]):
                    key = _hashable(self.hydrate(key_ref)) if tag == "Map" else key_ref
                    value[key] = self.hydrate(value_ref)
                return value
            else:
                raise CodecError(f"Unsupported tagged value {tag!r}")
        except (IndexError, ValueError, TypeError) as e:
            raise CodecError(f"Malformed {tag} value: {e}") from e
        self._hydrated[index] = value
        return value


def decode(text: str | bytes) -> Any:
    """Decode a string produced by encode() (or by devalue's stringify)."""
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CodecError(f"Malformed payload: {e}") from e
    if isinstance(parsed, int) and not isinstance(parsed, bool):
        if parsed not in _SPECIALS:
            raise CodecError(f"Invalid special index {parsed}")
        return _SPECIALS[parsed]
    if not isinstance(parsed, list) or not parsed:
        raise CodecError("Payload must be a non-empty array of slots")
    return _Hydrator(parsed).hydrate(0)
