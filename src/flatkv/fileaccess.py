"""Locked access to a database's data file.

Every handle is opened for exactly one mode:

    READ    shared flock, read-only
    WRITE   exclusive flock, truncated once the lock is held
    APPEND  exclusive flock, positioned at the end (readable from offset 0)

Locks are advisory and taken with LOCK_NB: a contended lock fails at once
with LockError, there is no waiting and no retry.

Rewrites never modify the data file in place. New content is spooled to a
scratch buffer, copied to a sibling temp file, fsync'd and moved over the
data file with a single os.replace() while the exclusive lock on the old
file is still held. A reader that opened the old file before the replace
notices the inode change after locking and fails with LockError instead of
reading stale data.

gzip-compressed files are never locked (flock on a compressed stream is
meaningless here), so gzip and concurrent writers from several processes
must not be combined.
"""

from __future__ import annotations

import contextlib
import enum
import fcntl
import gzip
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flatkv.config import StoreConfig

from flatkv.errors import LockError

logger = logging.getLogger("flatkv.fileaccess")


class Mode(enum.Enum):
    READ = "read"
    WRITE = "write"
    APPEND = "append"


# mode -> (open() mode, gzip.open() mode, flock operation)
_ACCESS: dict[Mode, tuple[str, str, int]] = {
    Mode.READ: ("r", "rt", fcntl.LOCK_SH),
    Mode.WRITE: ("r+", "wt", fcntl.LOCK_EX),
    Mode.APPEND: ("a+", "at", fcntl.LOCK_EX),
}

_ENCODING = "utf-8"


class FileAccess:
    """Opens, locks and atomically replaces one data file."""

    def __init__(self, path: Path | str, config: StoreConfig) -> None:
        self.path = Path(path)
        self.config = config

    # ------------------------------------------------------------------
    # Locked handles
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def open(self, mode: Mode) -> Iterator[IO[str]]:
        """Open the data file for mode; the lock is released on exit."""
        handle = self.acquire(mode)
        try:
            yield handle
        except BaseException:
            try:
                self.close(handle)
            except LockError as exc:
                logger.warning("unlock of %s failed while handling an error: %s", self.path, exc)
            raise
        self.close(handle)

    def acquire(self, mode: Mode) -> IO[str]:
        """Open and lock the data file. Pair with close()."""
        path = self.path
        self._ensure_exists()

        if not os.access(path, os.R_OK | os.W_OK):
            msg = f"File does not have permission for read and write: {path}"
            raise PermissionError(msg)

        file_mode, gzip_mode, operation = _ACCESS[mode]
        if self.config.gzip:
            return gzip.open(path, gzip_mode, encoding=_ENCODING)  # type: ignore[return-value]

        handle = path.open(file_mode, encoding=_ENCODING)
        try:
            fcntl.flock(handle, operation | fcntl.LOCK_NB)
        except OSError as exc:
            handle.close()
            msg = f"Could not lock file: {path}"
            raise LockError(msg) from exc

        if not self._is_current(handle):
            handle.close()
            msg = f"Could not lock file: {path} was replaced while being opened"
            raise LockError(msg)

        if mode is Mode.WRITE:
            handle.truncate(0)
        logger.debug("locked %s for %s", path, mode.value)
        return handle

    def close(self, handle: IO[str]) -> None:
        """Release the lock (if any) and close the handle, even if unlocking fails."""
        try:
            if not self.config.gzip:
                fcntl.flock(handle, fcntl.LOCK_UN)
        except (OSError, ValueError) as exc:
            msg = f"Could not unlock file: {self.path}"
            raise LockError(msg) from exc
        finally:
            handle.close()
        logger.debug("released %s", self.path)

    def _ensure_exists(self) -> None:
        if self.path.is_file():
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as exc:
            msg = f"Could not create file: {self.path}"
            raise OSError(msg) from exc

    def _is_current(self, handle: IO[str]) -> bool:
        """True if handle still refers to the file at self.path."""
        opened = os.fstat(handle.fileno())
        try:
            current = os.stat(self.path)
        except FileNotFoundError:
            return False
        return (opened.st_dev, opened.st_ino) == (current.st_dev, current.st_ino)

    # ------------------------------------------------------------------
    # Scratch space and rewrites
    # ------------------------------------------------------------------

    def open_temp(self) -> IO[str]:
        """Scratch read/write stream: memory up to swap_memory_limit, disk beyond.

        A limit of 0 goes straight to disk.
        """
        limit = self.config.swap_memory_limit
        if limit == 0:
            return tempfile.TemporaryFile(mode="w+", encoding=_ENCODING)
        return tempfile.SpooledTemporaryFile(max_size=limit, mode="w+", encoding=_ENCODING)  # type: ignore[return-value]

    @contextlib.contextmanager
    def rewrite(self) -> Iterator[tuple[Iterator[tuple[int, str]], IO[str]]]:
        """Yield (existing lines, scratch stream); on clean exit scratch replaces the file.

        If the body raises, the scratch stream is dropped and the data file is
        left exactly as it was.
        """
        source = self.open(Mode.READ) if self.config.gzip else self.open(Mode.APPEND)
        with source as live, self.open_temp() as scratch:
            if not self.config.gzip:
                live.seek(0)
            yield self.lines(live), scratch
            self._commit(scratch)

    def _commit(self, scratch: IO[str]) -> None:
        scratch.flush()
        scratch.seek(0)
        mode_bits = stat.S_IMODE(os.stat(self.path).st_mode)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as raw:
                os.fchmod(raw.fileno(), mode_bits)
                if self.config.gzip:
                    with gzip.GzipFile(fileobj=raw, mode="wb") as out:
                        _copy_encoded(scratch, out)
                else:
                    _copy_encoded(scratch, raw)
                raw.flush()
                os.fsync(raw.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("replaced %s", self.path)

    @staticmethod
    def lines(handle: IO[str]) -> Iterator[tuple[int, str]]:
        """Yield (line number, line) with the newline stripped, skipping empty lines."""
        for lineno, raw in enumerate(handle, start=1):
            line = raw.rstrip("\r\n")
            if line:
                yield lineno, line


def _copy_encoded(source: IO[str], target: IO[bytes], chunk_size: int = 1 << 16) -> None:
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        target.write(chunk.encode(_ENCODING))
