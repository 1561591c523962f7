"""
Advisory Lock Module

Cross-process mutual exclusion around the store file for the length of one
logical operation. The lock is cooperative: it only keeps out processes that
also ask for it. Acquisition never waits; a held lock is reported at once and
the caller decides whether to try again later.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Optional, Union

import filelock

from .logging_config import get_logger


logger = get_logger("account_store.locking")

LOCK_SUFFIX = ".lock"


class LockUnavailableError(RuntimeError):
    """The store is locked by another process (or could not be opened)"""


class StoreLock:
    """Handle for a held store lock"""

    def __init__(self, path: Path, handle: IO[bytes], lock: filelock.BaseFileLock):
        self.path = path
        self._handle = handle
        self._lock = lock

    @property
    def is_held(self) -> bool:
        return self._lock is not None and self._lock.is_locked

    def release(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None
        if self._handle is not None:
            self._handle.close()
            self._handle = None


def lock_file_for(path: Union[str, Path]) -> Path:
    path = Path(path)
    return path.with_name(path.name + LOCK_SUFFIX)


def acquire_lock(path: Union[str, Path]) -> Optional[StoreLock]:
    """
    Try once to lock path exclusively.

    The path itself must open for read/write. The lock is held on a sidecar
    "<path>.lock" file so the store's bytes are never touched.

    Returns:
        A StoreLock, or None if the path could not be opened or another
        holder has the lock
    """
    path = Path(path)
    try:
        handle = open(path, "r+b")
    except OSError as e:
        logger.error(f"Error opening {path} for locking: {e}")
        return None

    lock = filelock.FileLock(str(lock_file_for(path)), timeout=0)
    try:
        lock.acquire()
    except filelock.Timeout:
        handle.close()
        logger.info(f"Lock on {path} is held elsewhere")
        return None
    except OSError as e:
        handle.close()
        logger.error(f"Error creating lock file for {path}: {e}")
        return None

    logger.debug(f"Acquired lock on {path}")
    return StoreLock(path, handle, lock)


def release_lock(store_lock: Optional[StoreLock]) -> None:
    """Release a lock and close its handle; None or a released lock is a no-op"""
    if store_lock is None:
        return
    store_lock.release()
    logger.debug(f"Released lock on {store_lock.path}")


@contextmanager
def exclusive_store_lock(path: Union[str, Path], create: bool = True) -> Iterator[StoreLock]:
    """
    Hold the store lock for the duration of the block.

    Args:
        path: Store file to lock
        create: Create an empty store file first if it does not exist yet

    Raises:
        LockUnavailableError: if the lock is held elsewhere or the path
            cannot be opened
    """
    path = Path(path)
    if create and not path.exists():
        path.touch()

    store_lock = acquire_lock(path)
    if store_lock is None:
        raise LockUnavailableError(
            f"Account store {path} is in use by another process. Please try again later."
        )
    try:
        yield store_lock
    finally:
        release_lock(store_lock)
