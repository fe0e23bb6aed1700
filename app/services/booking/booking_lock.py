"""
Write guards for the appointment table.

Bookings take a lock per date for the whole read-check-write sequence so two
requests for overlapping slots on the same day are serialised. The reminder
pass takes a named lock so passes never overlap.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator

from redis.exceptions import LockError, RedisError

from app.config.redis import RedisKeys
from app.core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)


def _ordered(dates) -> list:
    # Sorted, de-duplicated acquisition order prevents lock-order deadlocks
    return sorted(set(dates))


class RedisLockManager:
    """Distributed locks backed by Redis (multi-process deployments)"""

    def __init__(self, client, timeout_seconds: int = 10, lease_seconds: int = 30):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.lease_seconds = lease_seconds

    @contextmanager
    def hold_dates(self, *dates: date) -> Iterator[None]:
        acquired = []
        try:
            for day in _ordered(dates):
                name = RedisKeys.BOOKING_DATE_LOCK.format(date=day.isoformat())
                lock = self.client.lock(
                    name,
                    timeout=self.lease_seconds,
                    blocking_timeout=self.timeout_seconds,
                )
                if not lock.acquire():
                    raise StorageUnavailableError(f"Timed out waiting for booking lock on {day}", lock=name)
                acquired.append(lock)
            yield
        except RedisError as e:
            logger.error(f"Redis lock failure: {e}")
            raise StorageUnavailableError("Booking lock service unavailable") from e
        finally:
            for lock in reversed(acquired):
                self._release(lock)

    @contextmanager
    def try_hold(self, name: str, lease_seconds: int = 3600) -> Iterator[bool]:
        """Non-blocking named lock; yields whether it was acquired"""
        lock = self.client.lock(name, timeout=lease_seconds)
        try:
            acquired = lock.acquire(blocking=False)
        except RedisError as e:
            logger.error(f"Redis lock failure for {name}: {e}")
            raise StorageUnavailableError("Lock service unavailable", lock=name) from e
        try:
            yield acquired
        finally:
            if acquired:
                self._release(lock)

    @staticmethod
    def _release(lock) -> None:
        try:
            lock.release()
        except LockError:
            # Lease expired while held; the next holder already owns it
            logger.warning(f"Lock {lock.name} expired before release")
        except RedisError as e:
            logger.error(f"Failed to release lock {lock.name}: {e}")


class LocalLockManager:
    """In-process locks (single worker deployments and tests)"""

    def __init__(self, timeout_seconds: int = 10):
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            if name not in self._locks:
                self._locks[name] = threading.Lock()
            return self._locks[name]

    @contextmanager
    def hold_dates(self, *dates: date) -> Iterator[None]:
        acquired = []
        try:
            for day in _ordered(dates):
                name = RedisKeys.BOOKING_DATE_LOCK.format(date=day.isoformat())
                lock = self._lock_for(name)
                if not lock.acquire(timeout=self.timeout_seconds):
                    raise StorageUnavailableError(f"Timed out waiting for booking lock on {day}", lock=name)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    @contextmanager
    def try_hold(self, name: str, lease_seconds: int = 3600) -> Iterator[bool]:
        lock = self._lock_for(name)
        acquired = lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
