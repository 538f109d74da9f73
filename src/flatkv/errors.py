"""Exception hierarchy for flatkv.

Plain I/O failures (create/read/write/rename) surface as the built-in
``OSError`` and ``PermissionError``; everything the store itself detects
derives from ``FlatKVError``.
"""

from __future__ import annotations


class FlatKVError(Exception):
    """Base class for errors raised by flatkv."""


class InvalidNameError(FlatKVError, ValueError):
    """Database name is empty or contains characters outside ``[\\w-]``."""


class InvalidKeyError(FlatKVError, KeyError):
    """Key is empty, not a string, or contains the separator or a newline."""

    def __str__(self) -> str:
        # KeyError.__str__ reprs the argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class LockError(FlatKVError, OSError):
    """An advisory lock could not be acquired or released."""


class CorruptRecordError(FlatKVError):
    """A line in the data file has no separator."""

    def __init__(self, path: object, lineno: int, line: str) -> None:
        self.path = path
        self.lineno = lineno
        self.line = line
        super().__init__(f"{path}:{lineno}: record has no separator: {line[:80]!r}")


class SerializationError(FlatKVError, ValueError):
    """A value could not be encoded to, or decoded from, a record line."""


class ConfigError(FlatKVError, ValueError):
    """Store configuration is invalid."""
