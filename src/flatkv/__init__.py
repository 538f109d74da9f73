"""Flat-file key-value store: one newline-delimited file per named database.

Layout:
    <directory>/
        <name>.dat        # key=value records, one per line

Record line:
    alice={'age': 31, 'tags': ['admin']}      # literal serializer (default)
    alice={"age":31,"tags":["admin"]}         # json serializer

Concurrent access: readers take a shared flock, set/delete/flush take an
exclusive one; both fail immediately (LockError) when contended. Writes go
to a scratch buffer and replace the file atomically (os.replace), so a crash
mid-write leaves the previous contents intact.
"""

from flatkv.config import StoreConfig, init_config, load_config
from flatkv.database import Database, load, unload, validate_name
from flatkv.errors import (
    ConfigError,
    CorruptRecordError,
    FlatKVError,
    InvalidKeyError,
    InvalidNameError,
    LockError,
    SerializationError,
)
from flatkv.serializers import JsonSerializer, LiteralSerializer, Serializer, get_serializer
from flatkv.store import NOT_FOUND, RecordStore

__version__ = "0.1.0"

__all__ = [
    "NOT_FOUND",
    "ConfigError",
    "CorruptRecordError",
    "Database",
    "FlatKVError",
    "InvalidKeyError",
    "InvalidNameError",
    "JsonSerializer",
    "LiteralSerializer",
    "LockError",
    "RecordStore",
    "SerializationError",
    "Serializer",
    "StoreConfig",
    "get_serializer",
    "init_config",
    "load",
    "load_config",
    "unload",
    "validate_name",
]
