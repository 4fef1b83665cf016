"""
Serial bus locking.

A serial line carries one transaction at a time, whatever unit is addressed
on it. Every physical target gets one process-wide lock; scrapes hold it for
their whole read sequence, retries included.
"""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from modbus_exporter.logging import get_logger
from modbus_exporter.metrics.instrumentation import Instrumentation

logger = get_logger(__name__)


class BusLockRegistry:
    """
    Registry of one exclusive lock per physical bus.
    
    Locks are created on first use and kept for the process lifetime.
    """

    def __init__(self, instrumentation: Optional[Instrumentation] = None):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self._instrumentation = instrumentation

    def _get_or_create(self, target_id: str) -> threading.Lock:
        lock = self._locks.get(target_id)
        if lock is not None:
            return lock
        # the guard only covers insertion, never the bus lock itself
        with self._guard:
            lock = self._locks.get(target_id)
            if lock is None:
                logger.debug(f"Creating bus lock for target {target_id}")
                lock = self._locks[target_id] = threading.Lock()
        return lock

    def acquire(self, target_id: str) -> None:
        """Block until the bus lock of ``target_id`` is granted."""
        self._get_or_create(target_id).acquire()

    def release(self, target_id: str) -> None:
        """Release the bus lock of ``target_id``; the lock stays registered."""
        self._locks[target_id].release()

    def __contains__(self, target_id: str) -> bool:
        return target_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, target_id: str, sub_target: int) -> Iterator[None]:
        """
        Hold the bus lock of ``target_id`` for the body of the ``with`` block.
        
        Waiting time and the number of waiters are recorded per (target, sub_target).
        """
        labels = (target_id, str(sub_target))
        start = time.monotonic()
        if self._instrumentation is not None:
            self._instrumentation.serial_mutex_waiters.labels(*labels).inc()
        try:
            self.acquire(target_id)
        finally:
            if self._instrumentation is not None:
                self._instrumentation.serial_mutex_waiters.labels(*labels).dec()
        if self._instrumentation is not None:
            self._instrumentation.serial_mutex_duration.labels(*labels).inc(time.monotonic() - start)
        logger.debug(f"Locked bus {target_id} for sub_target {sub_target}")
        try:
            yield
        finally:
            self.release(target_id)
            logger.debug(f"Unlocked bus {target_id} for sub_target {sub_target}")
