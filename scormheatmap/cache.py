"""
Simple TTL-based cache for computed SCORM module reports.
Reports are rebuilt from the track store on demand; the cache only spares
repeated batch passes while the data is fresh.
"""

import time
import hashlib
import json
import logging
from typing import Any, Optional, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


class ReportCache:
    """TTL cache that stores computed module reports in memory."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl_seconds
        self._clock = clock
        self._store: dict = {}

    @staticmethod
    def make_key(prefix: str, **kwargs) -> str:
        payload = json.dumps(kwargs, sort_keys=True, default=str)
        h = hashlib.md5(payload.encode()).hexdigest()[:8]
        return f"{prefix}:{h}"

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() - entry["ts"] > self.ttl:
            del self._store[key]
            logger.debug(f"Cache expired: {key}")
            return None
        logger.debug(f"Cache hit: {key}")
        return entry["value"]

    def set(self, key: str, value: Any) -> None:
        self._store[key] = {"value": value, "ts": self._clock()}
        logger.debug(f"Cache set: {key}")

    def clear_all(self) -> None:
        self._store.clear()
        logger.info("Cache cleared")

    def cached(self, key: str, fn: Callable, *args, **kwargs) -> Any:
        """Get from cache or compute and store."""
        result = self.get(key)
        if result is not None:
            return result
        result = fn(*args, **kwargs)
        self.set(key, result)
        return result

    def stats(self) -> dict:
        now = self._clock()
        alive = sum(1 for v in self._store.values() if now - v["ts"] <= self.ttl)
        return {"total_keys": len(self._store), "alive_keys": alive, "ttl_seconds": self.ttl}


# Singleton instance
cache = ReportCache(ttl_seconds=DEFAULT_TTL)

_caches = {DEFAULT_TTL: cache}


def shared_cache(ttl_seconds: int = DEFAULT_TTL) -> ReportCache:
    """Process-wide cache for the given TTL."""
    if ttl_seconds not in _caches:
        _caches[ttl_seconds] = ReportCache(ttl_seconds=ttl_seconds)
    return _caches[ttl_seconds]
