"""
In-process writer locks for the working partitions and the archive.

Every read-decide-write sequence holds the locks for the stores it touches. Locks are
taken in a single canonical order (AM, PM, archive) so overlapping requests cannot
deadlock, and acquisition gives up after a timeout with a retryable StoreBusy.
"""

import os
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterable, List, Tuple

from .config import get_lock_timeout
from .errors import StoreBusy
from .schema import ARCHIVE_TABLE, PartitionRef
from ..util.logging import logger

STORE_ORDER = [PartitionRef.FIRST_HALF.table, PartitionRef.SECOND_HALF.table, ARCHIVE_TABLE]

_registry_lock = threading.Lock()
_locks: Dict[Tuple[str, str], threading.Lock] = {}


def _lock_for(db_path: str, store: str) -> threading.Lock:
    key = (os.path.abspath(db_path), store)
    with _registry_lock:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


def ordered(stores: Iterable[str]) -> List[str]:
    """Deduplicate and sort store names into canonical acquisition order."""
    unique = set(stores)
    unknown = unique.difference(STORE_ORDER)
    if unknown:
        raise ValueError(f"Unknown stores: {sorted(unknown)}")
    return [store for store in STORE_ORDER if store in unique]


@contextmanager
def store_locks(db_path: str, stores: Iterable[str], timeout: float = None):
    """Hold the writer locks for `stores` for the duration of the block.

    The timeout is a budget for acquiring all locks, not each one.

    Raises:
        StoreBusy: if the locks could not all be acquired in time.
    """
    timeout = get_lock_timeout() if timeout is None else timeout
    names = ordered(stores)
    deadline = time.monotonic() + timeout
    acquired: List[threading.Lock] = []

    try:
        for name in names:
            lock = _lock_for(db_path, name)
            remaining = max(0.0, deadline - time.monotonic())
            if not lock.acquire(timeout=remaining):
                logger.log_lock_timeout(names, timeout)
                raise StoreBusy()
            acquired.append(lock)
        yield names
    finally:
        for lock in reversed(acquired):
            lock.release()
