"""
Read-through cache for the read-mostly schedule data (weekly hours, overrides).
Appointments are never cached; slot availability always reads them fresh.
"""
import json
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class RedisCacheBackend:
    """Thin JSON-over-Redis backend"""

    def __init__(self, client):
        self.client = client

    def get(self, key: str) -> Optional[Any]:
        value = self.client.get(key)
        return json.loads(value) if value else None

    def set(self, key: str, value: Any, ttl: int) -> None:
        self.client.setex(key, ttl, json.dumps(value))

    def delete(self, key: str) -> None:
        self.client.delete(key)


class NullCacheBackend:
    """Backend used when caching is disabled; every read is a miss"""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: int) -> None:
        return None

    def delete(self, key: str) -> None:
        return None


class ScheduleCache:
    """Read-through cache with explicit invalidation after writes"""

    def __init__(self, backend, ttl_seconds: int = 300):
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Return the cached JSON value for key, or call loader, cache its result
        and return it. Cache failures degrade to a direct load.
        """
        try:
            cached = self.backend.get(key)
            if cached is not None:
                logger.debug(f"✅ Cache HIT: {key}")
                return cached
        except Exception as e:
            logger.warning(f"⚠️ Schedule cache read failed for {key}: {e}")

        logger.debug(f"❌ Cache MISS: {key}")
        value = loader()

        try:
            self.backend.set(key, value, self.ttl_seconds)
        except Exception as e:
            logger.warning(f"⚠️ Schedule cache write failed for {key}: {e}")

        return value

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            try:
                self.backend.delete(key)
                logger.debug(f"✅ Cache DELETE: {key}")
            except Exception as e:
                # A stale entry expires with its TTL
                logger.error(f"❌ Schedule cache invalidation failed for {key}: {e}")
