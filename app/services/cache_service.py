# app/services/cache_service.py
"""
TTL key-value cache for slow-changing read results (camera list, car makes).

Values are stored JSON-serialized and decoded on every get, so a caller that
mutates what it got back cannot corrupt the cached copy. Expired entries are
evicted lazily on access. One process-wide instance is handed out through
the get_cache dependency; tests override it with a fresh CacheService.
"""

import json
import threading
import time
from typing import Any, Callable, Optional

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


class CacheService:
    def __init__(self, default_ttl: float = None, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl if default_ttl is not None else settings.CACHE_TTL_SECONDS
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            payload, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl_seconds: float = None) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"[CACHE] Value for {key} is not JSON-serializable, not cached: {e}")
            return
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (payload, self._clock() + ttl)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_cache = CacheService()


def get_cache() -> CacheService:
    """FastAPI dependency: the shared response cache."""
    return _cache
