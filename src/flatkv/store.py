"""RecordStore: get/set/delete/flush over one flat data file.

File format, one record per line:

    key<separator>serialized-value

Reads scan the file under a shared lock. set/delete stream every line into a
scratch buffer, substituting or dropping the target record, and atomically
replace the file (see flatkv.fileaccess). Nothing stays open between calls.

With the cache enabled the first read decodes the whole file once; later
reads are answered from memory and each write updates the mirror after it
has been committed to disk.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Any

from flatkv.cache import RecordCache
from flatkv.errors import CorruptRecordError, InvalidKeyError, SerializationError
from flatkv.fileaccess import FileAccess, Mode

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from flatkv.config import StoreConfig

logger = logging.getLogger("flatkv.store")


class _Missing(enum.Enum):
    NOT_FOUND = "NOT_FOUND"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


#: Returned by RecordStore.get() for a key that is not stored.
NOT_FOUND = _Missing.NOT_FOUND


class RecordStore:
    """Key-value records in a single newline-delimited file."""

    def __init__(self, path: Path | str, config: StoreConfig) -> None:
        self.config = config
        self.files = FileAccess(path, config)
        self._cache = RecordCache() if config.cache else None

    @property
    def path(self) -> Path:
        return self.files.path

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = NOT_FOUND) -> Any:
        """Return the value stored under key, or default (NOT_FOUND) if absent."""
        self._check_key(key)
        if self._cache is not None:
            self._load_cache()
            return self._cache.get(key, default)

        with self.files.open(Mode.READ) as f:
            for lineno, line in self.files.lines(f):
                k, raw = self._split(lineno, line)
                if k == key:
                    return self.config.serializer.decode(raw)
        return default

    def get_keys(self) -> list[str]:
        """All keys in file order."""
        if self._cache is not None:
            self._load_cache()
            return self._cache.keys()

        keys: dict[str, None] = {}
        with self.files.open(Mode.READ) as f:
            for lineno, line in self.files.lines(f):
                k, _ = self._split(lineno, line)
                keys[k] = None
        return list(keys)

    def get_all(self) -> dict[str, Any]:
        """All records as a dict, in file order."""
        if self._cache is not None:
            self._load_cache()
            return self._cache.items()
        return self._decode_all()

    def _decode_all(self) -> dict[str, Any]:
        # later duplicates overwrite the value but keep the first position
        data: dict[str, Any] = {}
        decode = self.config.serializer.decode
        with self.files.open(Mode.READ) as f:
            for lineno, line in self.files.lines(f):
                k, raw = self._split(lineno, line)
                data[k] = decode(raw)
        return data

    def _load_cache(self) -> None:
        assert self._cache is not None
        if not self._cache.loaded:
            self._cache.load(self._decode_all().items())
            logger.debug("cached %d records from %s", len(self._cache), self.path)

    def invalidate_cache(self) -> None:
        """Drop the in-memory mirror, e.g. after another process changed the file."""
        if self._cache is not None:
            self._cache.reset()

    def __contains__(self, key: object) -> bool:
        if not self._is_valid_key(key):
            return False
        return self.get(key) is not NOT_FOUND

    def __iter__(self) -> Iterator[str]:
        return iter(self.get_keys())

    def __len__(self) -> int:
        return len(self.get_keys())

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        """Store value under key. Existing records keep their position in the file."""
        self._check_key(key)
        encoded = self._encode(value)
        record = f"{key}{self.config.separator}{encoded}\n"

        found = False
        dropped = 0
        with self.files.rewrite() as (lines, scratch):
            for lineno, line in lines:
                k, _ = self._split(lineno, line)
                if k != key:
                    scratch.write(line + "\n")
                elif not found:
                    scratch.write(record)
                    found = True
                else:
                    dropped += 1
            if not found:
                scratch.write(record)

        if dropped:
            logger.warning("%s: dropped %d duplicate record(s) for %r", self.path, dropped, key)
        logger.debug("set %r in %s (%s)", key, self.path, "updated" if found else "appended")
        if self._cache is not None:
            self._cache.put(key, self.config.serializer.decode(encoded))

    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is a no-op."""
        self._check_key(key)
        removed = 0
        with self.files.rewrite() as (lines, scratch):
            for lineno, line in lines:
                k, _ = self._split(lineno, line)
                if k == key:
                    removed += 1
                    continue
                scratch.write(line + "\n")

        logger.debug("delete %r from %s (%d record(s))", key, self.path, removed)
        if self._cache is not None:
            self._cache.invalidate(key)

    def flush(self) -> None:
        """Remove every record."""
        with self.files.open(Mode.WRITE):
            pass
        logger.debug("flushed %s", self.path)
        if self._cache is not None:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _is_valid_key(self, key: object) -> bool:
        if not isinstance(key, str) or not key:
            return False
        return self.config.separator not in key and "\n" not in key and "\r" not in key

    def _check_key(self, key: str) -> None:
        if not isinstance(key, str) or not key:
            msg = f"key must be a non-empty string, got {key!r}"
            raise InvalidKeyError(msg)
        if not self._is_valid_key(key):
            msg = f"key must not contain {self.config.separator!r} or a line break: {key!r}"
            raise InvalidKeyError(msg)

    def _encode(self, value: Any) -> str:
        encoded = self.config.serializer.encode(value)
        if not isinstance(encoded, str):
            msg = f"serializer returned {type(encoded).__name__}, expected str"
            raise SerializationError(msg)
        if "\n" in encoded or "\r" in encoded:
            msg = "encoded value contains a line break"
            raise SerializationError(msg)
        return encoded

    def _split(self, lineno: int, line: str) -> tuple[str, str]:
        key, sep, raw = line.partition(self.config.separator)
        if not sep:
            raise CorruptRecordError(self.path, lineno, line)
        return key, raw
