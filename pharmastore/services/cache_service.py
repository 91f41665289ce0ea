"""
Redis cache for storefront read models (order stats, public catalog listings).
Every key is scoped to one pharmacy; a Redis outage degrades to uncached reads.
"""

import logging
import json
from typing import Any, Optional, Callable, Dict
from datetime import datetime, date
from decimal import Decimal

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask, current_app

logger = logging.getLogger(__name__)


class CacheService:
    """
    Pharmacy-isolated cache on top of Redis.

    Keys pattern: {prefix}:pharmacy:{pharmacy_id}:{module}:{key}
    """

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled: bool = False
        self._prefix: str = ""

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Connect to Redis using REDIS_URL; disable the cache if unreachable."""
        self._enabled = app.config.get('CACHE_ENABLED', True)
        self._prefix = app.config.get('CACHE_KEY_PREFIX', 'pharmastore')
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')

        if not self._enabled:
            logger.info("[CACHE] disabled by configuration")
            return

        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[CACHE] connected to {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[CACHE] Redis unreachable ({e}), running without cache")
            self._enabled = False
            self.client = None

    @property
    def enabled(self) -> bool:
        return self._enabled and self.client is not None

    def is_available(self) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.ping()
            return True
        except (ConnectionError, RedisError):
            return False

    def build_key(self, pharmacy_id: int, module: str, key: str) -> str:
        return f"{self._prefix}:pharmacy:{pharmacy_id}:{module}:{key}"

    @staticmethod
    def _encode(value: Any) -> str:
        """JSON with exact Decimals (tagged) and ISO dates."""
        def default(obj: Any) -> Any:
            if isinstance(obj, Decimal):
                return {"__decimal__": str(obj)}
            if isinstance(obj, (datetime, date)):
                return obj.isoformat()
            raise TypeError(f"Cannot cache value of type {type(obj).__name__}")
        return json.dumps(value, default=default)

    @staticmethod
    def _decode(raw: str) -> Any:
        def hook(dct: Dict[str, Any]) -> Any:
            if "__decimal__" in dct:
                return Decimal(dct["__decimal__"])
            return dct
        return json.loads(raw, object_hook=hook)

    def get(self, pharmacy_id: int, module: str, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = self.client.get(self.build_key(pharmacy_id, module, key))
            return None if raw is None else self._decode(raw)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] get failed: {e}")
            return None

    def set(self, pharmacy_id: int, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        if ttl is None:
            ttl = current_app.config.get('CACHE_DEFAULT_TTL', 60)
        try:
            self.client.setex(self.build_key(pharmacy_id, module, key), ttl, self._encode(value))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] set failed: {e}")
            return False

    def delete(self, pharmacy_id: int, module: str, key: str) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.delete(self.build_key(pharmacy_id, module, key))
            return True
        except RedisError as e:
            logger.warning(f"[CACHE] delete failed: {e}")
            return False

    def invalidate_module(self, pharmacy_id: int, module: str) -> int:
        """Drop every key of one module for one pharmacy. Returns number of keys removed."""
        if not self.enabled:
            return 0
        pattern = self.build_key(pharmacy_id, module, "*")
        removed = 0
        try:
            for batch in self._scan_batches(pattern):
                self.client.delete(*batch)
                removed += len(batch)
        except RedisError as e:
            logger.warning(f"[CACHE] invalidate failed for {pattern}: {e}")
            return removed
        if removed:
            logger.info(f"[CACHE] invalidated {pattern} ({removed} keys)")
        return removed

    def _scan_batches(self, pattern: str, count: int = 100):
        cursor = 0
        while True:
            cursor, keys = self.client.scan(cursor, match=pattern, count=count)
            if keys:
                yield keys
            if cursor == 0:
                break

    def memoize(self, pharmacy_id: int, module: str, key: str, loader_fn: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Cache-aside read. Loader errors propagate; cache errors never do."""
        cached = self.get(pharmacy_id, module, key)
        if cached is not None:
            return cached
        value = loader_fn()
        self.set(pharmacy_id, module, key, value, ttl)
        return value


_cache_service: Optional[CacheService] = None


def init_cache(app: Flask) -> CacheService:
    """Create the process-wide cache and register it on the app."""
    global _cache_service
    _cache_service = CacheService(app)
    app.extensions['cache'] = _cache_service
    return _cache_service


def get_cache() -> CacheService:
    if _cache_service is None:
        raise RuntimeError("Cache not initialized. Call init_cache(app) first.")
    return _cache_service


def invalidate(pharmacy_id: int, module: str) -> None:
    """Best-effort invalidation usable from services after a commit."""
    if _cache_service is None:
        return
    _cache_service.invalidate_module(pharmacy_id, module)
