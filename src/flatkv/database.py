"""Named databases.

    db = flatkv.load("users", directory="data")
    db.set("alice", {"age": 31})
    db.get("alice")          # {'age': 31}
    db["bob"]                # KeyError
    db.get("bob")            # NOT_FOUND (falsy)

A database is a name plus a StoreConfig; its data lives in
``{directory}/{name}{extension}``.
"""

from __future__ import annotations

import re
import threading
from typing import TYPE_CHECKING, Any

from flatkv.config import StoreConfig
from flatkv.errors import InvalidNameError
from flatkv.store import NOT_FOUND, RecordStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

_NAME_RE = re.compile(r"^[\w-]+$", re.ASCII)


def validate_name(name: str) -> str:
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        msg = f"Invalid characters in database name: {name!r}"
        raise InvalidNameError(msg)
    return name


class Database:
    """A named flat-file database with dict-style access."""

    def __init__(self, name: str, config: StoreConfig | None = None) -> None:
        self.name = validate_name(name)
        self.config = config if config is not None else StoreConfig()
        self.store = RecordStore(self.config.path_for(self.name), self.config)

    @property
    def path(self) -> Path:
        return self.store.path

    def __repr__(self) -> str:
        return f"Database({self.name!r}, path={str(self.path)!r})"

    # -- record operations ---------------------------------------------

    def get(self, key: str, default: Any = NOT_FOUND) -> Any:
        return self.store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.store.set(key, value)

    def delete(self, key: str) -> None:
        self.store.delete(key)

    def flush(self) -> None:
        self.store.flush()

    def get_keys(self) -> list[str]:
        return self.store.get_keys()

    def get_all(self) -> dict[str, Any]:
        return self.store.get_all()

    # -- mapping protocol ----------------------------------------------

    def __getitem__(self, key: str) -> Any:
        value = self.store.get(key)
        if value is NOT_FOUND:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.store.set(key, value)

    def __delitem__(self, key: str) -> None:
        if key not in self.store:
            raise KeyError(key)
        self.store.delete(key)

    def __contains__(self, key: object) -> bool:
        return key in self.store

    def __iter__(self) -> Iterator[str]:
        return iter(self.store)

    def __len__(self) -> int:
        return len(self.store)


_instances: dict[Path, Database] = {}
_instances_lock = threading.Lock()


def load(name: str, config: StoreConfig | None = None, **options: Any) -> Database:
    """Return the Database for name, sharing one instance per data file.

    Keyword options override fields of config (or of the defaults), e.g.
    ``load("users", directory="data", cache=False)``. A later call for the
    same file with a different configuration replaces the shared instance.
    """
    validate_name(name)
    base = config if config is not None else StoreConfig()
    if options:
        base = base.replace(**options)
    path = base.path_for(name).resolve()

    with _instances_lock:
        db = _instances.get(path)
        if db is None or db.config != base:
            db = Database(name, base)
            _instances[path] = db
        return db


def unload(name: str | None = None) -> None:
    """Forget shared instances (all of them when name is None)."""
    with _instances_lock:
        if name is None:
            _instances.clear()
            return
        for path in [p for p, db in _instances.items() if db.name == name]:
            del _instances[path]
