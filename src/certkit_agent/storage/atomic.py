"""
Crash-safe file persistence.

Writes go to a sibling temporary file that is flushed, fsync'd and then
renamed over the target, so readers see either the old file or the new
one and never a torn mix. The temp file carries the final permission
bits from creation, so secret material is never briefly world-readable.
"""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

from certkit_agent.exceptions import AtomicWriteError

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _fsync_directory(directory: Path) -> None:
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


@contextmanager
def atomic_writer(path: PathLike, mode: int = 0o600) -> Iterator[BinaryIO]:
    """Yield a binary handle whose contents replace ``path`` on clean exit.

    If the block raises, the temporary file is closed and removed and the
    exception propagates; ``path`` is left untouched.
    """
    target = Path(path)
    directory = target.parent

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.tmp.", dir=directory)
    tmp = os.fdopen(fd, "wb")
    try:
        os.fchmod(tmp.fileno(), mode)
        yield tmp
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp.close()
        os.replace(tmp_name, target)
    except BaseException:
        tmp.close()
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    # The rename has landed; a failed directory sync only weakens durability.
    try:
        _fsync_directory(directory)
    except OSError as exc:
        logger.warning("Failed to sync directory %s after replacing %s: %s", directory, target, exc)


def write_file_atomic(path: PathLike, data: bytes, mode: int = 0o600) -> None:
    """Atomically replace ``path`` with ``data``.

    Raises:
        AtomicWriteError: If any step of the write, sync or rename fails.
    """
    try:
        with atomic_writer(path, mode) as fh:
            fh.write(data)
    except OSError as exc:
        raise AtomicWriteError(os.fspath(path), f"atomic write failed ({exc})") from exc
    logger.debug("Wrote %d bytes to %s", len(data), path)


@contextmanager
def exclusive_lock(path: PathLike) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``<path>.lock`` for the block.

    Serializes read-modify-write sequences on ``path`` across processes.
    """
    lock_path = f"{os.fspath(path)}.lock"
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o600)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
