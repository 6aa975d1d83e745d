"""Redis-backed JSON cache for assembled forecast and historical results."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis
from pydantic import BaseModel
from redis.exceptions import RedisError

from .config import Settings
from .exceptions import CacheError
from .redaction import sanitize_text

FORECAST_PREFIX = "forecast_"
HISTORICAL_PREFIX = "historical_"


def forecast_cache_key(lat: float, lon: float) -> str:
    return f"{FORECAST_PREFIX}{lat:.4f}_{lon:.4f}"


def historical_cache_key(lat: float, lon: float, year: int) -> str:
    return f"{HISTORICAL_PREFIX}{lat:.4f}_{lon:.4f}_{year}"


class CacheStats(BaseModel):
    """Key counts (and memory usage when reported) for the result cache."""

    total_keys: int = 0
    forecast_keys: int = 0
    historical_keys: int = 0
    used_memory: str | None = None


class ResultCache:
    """Thin wrapper over a Redis client storing JSON values with TTLs.

    Read and write failures are logged and treated as a miss so a Redis
    outage never blocks a forecast. Administrative calls (``stats`` and
    ``clear_all``) raise :class:`CacheError` instead.
    """

    def __init__(self, client: Any | None, logger: logging.Logger) -> None:
        self.client = client
        self.logger = logger

    @classmethod
    def from_settings(cls, settings: Settings, logger: logging.Logger) -> ResultCache:
        """Connect to ``REDIS_URL``; an unreachable server yields a disabled cache."""
        if not settings.cache_enabled:
            logger.info("Result cache disabled by configuration")
            return cls(None, logger)
        try:
            client = redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
        except (RedisError, ValueError) as exc:
            logger.warning(
                "Redis cache unavailable, caching disabled: %s", sanitize_text(str(exc))
            )
            return cls(None, logger)
        logger.info("Redis cache connected")
        return cls(client, logger)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            value = self.client.get(key)
        except RedisError as exc:
            self.logger.error("Cache GET error for key '%s': %s", key, exc)
            return None
        if not value:
            self.logger.debug("Cache MISS: %s", key)
            return None
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError as exc:
            self.logger.error("Cache entry for key '%s' is not valid JSON: %s", key, exc)
            return None
        self.logger.debug("Cache HIT: %s", key)
        return decoded

    def set(self, key: str, payload: Any, ttl: int) -> bool:
        if self.client is None:
            return False
        try:
            serialized = json.dumps(payload, default=str)
            self.client.setex(key, ttl, serialized)
        except (RedisError, TypeError, ValueError) as exc:
            self.logger.error("Cache SET error for key '%s': %s", key, exc)
            return False
        self.logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    def delete(self, key: str) -> bool:
        if self.client is None:
            return False
        try:
            removed = self.client.delete(key)
        except RedisError as exc:
            self.logger.error("Cache DELETE error for key '%s': %s", key, exc)
            return False
        return bool(removed)

    def delete_location(self, lat: float, lon: float) -> int:
        """Remove the forecast and every cached historical year for one location."""
        keys = [forecast_cache_key(lat, lon)]
        keys.extend(self._scan(f"{HISTORICAL_PREFIX}{lat:.4f}_{lon:.4f}_*"))
        return sum(1 for key in keys if self.delete(key))

    def clear_all(self) -> int:
        """Delete every forecast and historical entry; returns the number removed."""
        keys = self._scan(f"{FORECAST_PREFIX}*") + self._scan(f"{HISTORICAL_PREFIX}*")
        if not keys:
            return 0
        try:
            return int(self._require_client().delete(*keys))
        except RedisError as exc:
            raise CacheError(f"Failed clearing cache: {exc}") from exc

    def stats(self) -> CacheStats:
        forecast_keys = self._scan(f"{FORECAST_PREFIX}*")
        historical_keys = self._scan(f"{HISTORICAL_PREFIX}*")
        client = self._require_client()
        try:
            total = int(client.dbsize())
            memory = client.info("memory")
        except RedisError as exc:
            raise CacheError(f"Failed reading cache stats: {exc}") from exc
        return CacheStats(
            total_keys=total,
            forecast_keys=len(forecast_keys),
            historical_keys=len(historical_keys),
            used_memory=memory.get("used_memory_human") if isinstance(memory, dict) else None,
        )

    def _require_client(self) -> Any:
        if self.client is None:
            raise CacheError("Result cache is disabled or Redis is unreachable.")
        return self.client

    def _scan(self, pattern: str) -> list[str]:
        client = self._require_client()
        try:
            return list(client.scan_iter(match=pattern))
        except RedisError as exc:
            raise CacheError(f"Failed scanning cache keys ({pattern}): {exc}") from exc
