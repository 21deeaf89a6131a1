"""
Process-wide locks guarding the managed data directory.

Two locks exist:
- the run lock: at most one installation or update run per process.
  Starting a second run while one is active is rejected, not queued.
- one reentrant lock per data directory, held around every write to the
  tree (config saves, backups, restores) so they never interleave.
"""

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from ..core.errors import OperationInProgressError
from .logger import get_logger

logger = get_logger(__name__)

_run_lock = threading.Lock()
_run_owner: Dict[str, str] = {}

_directory_locks: Dict[str, threading.RLock] = {}
_directory_locks_guard = threading.Lock()


def acquire_run_lock(operation: str) -> None:
    """Claim the run lock or raise OperationInProgressError."""
    if not _run_lock.acquire(blocking=False):
        active = _run_owner.get("operation", "another operation")
        raise OperationInProgressError(
            f"Cannot start {operation}: {active} is already in progress"
        )
    _run_owner["operation"] = operation
    logger.debug(f"Run lock acquired for {operation}")


def release_run_lock() -> None:
    if not _run_lock.locked():
        return
    operation = _run_owner.pop("operation", "unknown")
    _run_lock.release()
    logger.debug(f"Run lock released by {operation}")


def is_run_active() -> bool:
    return _run_lock.locked()


@contextmanager
def exclusive_run(operation: str) -> Iterator[None]:
    acquire_run_lock(operation)
    try:
        yield
    finally:
        release_run_lock()


def _lock_key(root: Path) -> str:
    return str(Path(root).expanduser().resolve())


def get_directory_lock(root: Path) -> threading.RLock:
    key = _lock_key(root)
    with _directory_locks_guard:
        lock = _directory_locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _directory_locks[key] = lock
        return lock


@contextmanager
def data_directory_lock(root: Path) -> Iterator[None]:
    lock = get_directory_lock(root)
    with lock:
        yield
