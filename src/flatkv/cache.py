"""In-memory mirror of a database's decoded records."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable


class RecordCache:
    """Full key -> value mapping, in file order.

    Empty and unloaded until load() is called with the result of a full scan.
    While unloaded, put()/invalidate() are ignored: the next load() reads the
    file again anyway. Values go out as deep copies so callers can't mutate
    the mirror behind the store's back.

    Not shared between store instances or processes, and not locked.
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self.loaded = False

    def load(self, items: Iterable[tuple[str, Any]]) -> None:
        data: dict[str, Any] = {}
        for key, value in items:
            data[key] = value
        self._data = data
        self.loaded = True

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def put(self, key: str, value: Any) -> None:
        # dict keeps an existing key's position, matching an in-place rewrite
        if self.loaded:
            self._data[key] = value

    def invalidate(self, key: str) -> None:
        if self.loaded:
            self._data.pop(key, None)

    def clear(self) -> None:
        self._data = {}
        self.loaded = True

    def reset(self) -> None:
        """Forget everything; the next read reloads from disk."""
        self._data = {}
        self.loaded = False

    def keys(self) -> list[str]:
        return list(self._data)

    def items(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)
