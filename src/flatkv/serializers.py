"""Value serializers: turn a Python value into a single record line and back.

The store only relies on the ``Serializer`` protocol (``encode``/``decode``).
Two formats ship with flatkv:

    literal   Python literal syntax (repr / ast.literal_eval). Round-trips
              tuples, sets, bytes, complex numbers and non-string dict
              keys. The default.
    json      compact JSON. Portable, but tuples come back as lists and
              dict keys as strings.

Both escape newlines inside strings, so an encoded value never spans lines.
"""

from __future__ import annotations

import ast
import json
import math
from typing import Any, Protocol, runtime_checkable

from flatkv.errors import ConfigError, SerializationError


@runtime_checkable
class Serializer(Protocol):
    """Anything with encode(value) -> str and decode(str) -> value."""

    def encode(self, value: Any) -> str: ...

    def decode(self, text: str) -> Any: ...


_SCALARS = (type(None), bool, int, float, complex, str, bytes)
_SEQUENCES = (list, tuple, set)


def _check_literal(value: Any, _seen: set[int] | None = None) -> None:
    """Raise SerializationError unless value is built purely from literals."""
    if isinstance(value, _SCALARS):
        if type(value) not in _SCALARS:
            msg = f"cannot store subclass {type(value).__name__!r} as a literal"
            raise SerializationError(msg)
        if isinstance(value, complex):
            finite = math.isfinite(value.real) and math.isfinite(value.imag)
        else:
            finite = not isinstance(value, float) or math.isfinite(value)
        if not finite:
            msg = f"cannot store non-finite number {value!r} as a literal"
            raise SerializationError(msg)
        return

    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        msg = "cannot store self-referencing container"
        raise SerializationError(msg)

    if type(value) in _SEQUENCES:
        seen.add(id(value))
        for item in value:
            _check_literal(item, seen)
        seen.discard(id(value))
    elif type(value) is dict:
        seen.add(id(value))
        for k, v in value.items():
            _check_literal(k, seen)
            _check_literal(v, seen)
        seen.discard(id(value))
    else:
        msg = f"cannot store object of type {type(value).__name__!r}"
        raise SerializationError(msg)


class LiteralSerializer:
    """Native Python structures written in literal syntax."""

    name = "literal"

    def encode(self, value: Any) -> str:
        _check_literal(value)
        return repr(value)

    def decode(self, text: str) -> Any:
        try:
            return ast.literal_eval(text)
        except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError) as exc:
            msg = f"malformed literal value: {text[:80]!r}"
            raise SerializationError(msg) from exc

    def __repr__(self) -> str:
        return "LiteralSerializer()"

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self)

    def __hash__(self) -> int:
        return hash(type(self))


class JsonSerializer:
    """Compact JSON, one document per line."""

    name = "json"

    def encode(self, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        except (TypeError, ValueError, RecursionError) as exc:
            msg = f"cannot encode value as JSON: {exc}"
            raise SerializationError(msg) from exc

    def decode(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"malformed JSON value: {text[:80]!r}"
            raise SerializationError(msg) from exc

    def __repr__(self) -> str:
        return "JsonSerializer()"

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self)

    def __hash__(self) -> int:
        return hash(type(self))


_BY_NAME: dict[str, type[LiteralSerializer] | type[JsonSerializer]] = {
    LiteralSerializer.name: LiteralSerializer,
    JsonSerializer.name: JsonSerializer,
}


def get_serializer(name: str) -> Serializer:
    """Resolve a serializer by its configuration name ("literal" or "json")."""
    try:
        return _BY_NAME[name.lower()]()
    except KeyError:
        msg = f"unknown serializer {name!r} (expected one of: {', '.join(sorted(_BY_NAME))})"
        raise ConfigError(msg) from None
