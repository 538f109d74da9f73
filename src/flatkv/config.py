"""StoreConfig: settings resolved when a database is opened.

A project may keep its defaults in ``flatkv.toml`` (found by walking up from
the working directory):

    [flatkv]
    directory = "data"          # relative to the directory holding flatkv.toml
    extension = ".dat"
    gzip = false                # no file locking when enabled
    cache = true
    swap_memory_limit = 2097152 # bytes buffered in memory during a rewrite
    serializer = "literal"      # or "json"
    separator = "="
"""

from __future__ import annotations

import dataclasses
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flatkv.errors import ConfigError
from flatkv.serializers import LiteralSerializer, Serializer, get_serializer

_CONFIG_FILENAME = "flatkv.toml"
_DEFAULT_EXTENSION = ".dat"
_DEFAULT_SWAP_MEMORY_LIMIT = 2 * 1024 * 1024
_DEFAULT_SEPARATOR = "="


@dataclass(frozen=True)
class StoreConfig:
    """Immutable options for one database."""

    directory: Path = field(default_factory=Path.cwd)
    extension: str = _DEFAULT_EXTENSION
    gzip: bool = False
    cache: bool = True
    swap_memory_limit: int = _DEFAULT_SWAP_MEMORY_LIMIT
    serializer: Serializer = field(default_factory=LiteralSerializer)
    separator: str = _DEFAULT_SEPARATOR

    def __post_init__(self) -> None:
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "directory", Path(self.directory))

        ext = self.extension
        if ext and not ext.startswith("."):
            ext = "." + ext
        object.__setattr__(self, "extension", ext)

        for option in ("gzip", "cache"):
            if not isinstance(getattr(self, option), bool):
                msg = f"{option} must be true or false, got {getattr(self, option)!r}"
                raise ConfigError(msg)

        if isinstance(self.serializer, str):
            object.__setattr__(self, "serializer", get_serializer(self.serializer))
        elif not isinstance(self.serializer, Serializer):
            msg = f"serializer must provide encode() and decode(), got {type(self.serializer).__name__}"
            raise ConfigError(msg)

        if isinstance(self.swap_memory_limit, bool) or not isinstance(self.swap_memory_limit, int):
            msg = f"swap_memory_limit must be an integer, got {self.swap_memory_limit!r}"
            raise ConfigError(msg)
        if self.swap_memory_limit < 0:
            msg = f"swap_memory_limit must be >= 0, got {self.swap_memory_limit}"
            raise ConfigError(msg)

        if not isinstance(self.separator, str) or len(self.separator) != 1 or self.separator in "\r\n":
            msg = f"separator must be a single non-newline character, got {self.separator!r}"
            raise ConfigError(msg)

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}{self.extension}"

    def replace(self, **changes: Any) -> StoreConfig:
        """Return a copy with the given fields changed."""
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc


def _from_section(section: dict[str, Any], base_dir: Path) -> StoreConfig:
    known = {f.name for f in dataclasses.fields(StoreConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        msg = f"unknown option(s) in [flatkv]: {', '.join(unknown)}"
        raise ConfigError(msg)

    kwargs: dict[str, Any] = dict(section)
    directory = Path(str(kwargs.get("directory", ".")))
    kwargs["directory"] = directory if directory.is_absolute() else base_dir / directory
    return StoreConfig(**kwargs)


def load_config(root: Path | str | None = None) -> StoreConfig:
    """Load flatkv.toml from root (or search upward from cwd if root is None).

    Without a config file every option takes its default and the database
    directory is the root itself.
    """
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"{config_path}: {exc}"
            raise ConfigError(msg) from exc

    return _from_section(raw.get("flatkv", {}), root_path)


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for flatkv.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, directory: str = "data") -> Path:
    """Write a default flatkv.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"flatkv.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[flatkv]
directory = "{directory}"
# extension = ".dat"
# gzip = false                # compressed files are never locked
# cache = true
# swap_memory_limit = 2097152 # bytes kept in memory while rewriting
# serializer = "literal"      # "literal" or "json"
# separator = "="
"""
    config_path.write_text(content)
    return config_path
