"""Optional Redis layer for leaderboard caching and rate limiting.

Redis is never required. When ``REDIS_URL`` is unset or the server stops
answering, every call returns its empty result (None, False, []) and the
caller falls back to SQLite or skips the limit.
"""

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from typeb.core.config import Constants, settings


logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "typeb"


def cache_key(*parts: object) -> str:
    """Build a namespaced key, e.g. ``cache_key("leaderboard", 12, 30)`` -> ``typeb:leaderboard:12:30``."""
    return ":".join([KEY_PREFIX, *(str(part) for part in parts)])


def with_retry(
    max_retries: int = 3, base_delay: float = 0.1
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """Retry a coroutine on RedisError, doubling the delay after each attempt.

    The last error is re-raised once attempts run out.
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except RedisError as e:
                    if attempt == max_retries:
                        logger.error("redis_retry_exhausted", extra={"attempts": attempt, "error": str(e)})
                        raise
                    delay = base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        "redis_retry", extra={"attempt": attempt, "delay_seconds": delay, "error": str(e)}
                    )
                    await asyncio.sleep(delay)
            raise RuntimeError("with_retry requires max_retries >= 1")

        return wrapper

    return decorator


class RedisClient:
    """Async Redis wrapper that degrades to no-ops when Redis is unavailable."""

    def __init__(self, url: str | None = None) -> None:
        self._client: Redis | None = None
        self._url = url if url is not None else settings.redis_url
        self._enabled = bool(self._url)
        self._last_successful_operation: datetime | None = None
        self._failure_count = 0
        self._total_operations = 0

        if self._enabled and self._url:
            try:
                pool = ConnectionPool.from_url(
                    self._url,
                    max_connections=Constants.REDIS_MAX_CONNECTIONS,
                    decode_responses=True,
                )
                self._client = Redis(connection_pool=pool)
                logger.info("redis_configured", extra={"url": self._url})
            except (RedisError, ValueError) as e:
                logger.warning("redis_configuration_failed", extra={"error": str(e)})
                self._enabled = False

    @property
    def is_available(self) -> bool:
        """True when Redis is configured and the pool was created."""
        return self._enabled and self._client is not None

    def get_health_status(self) -> dict[str, Any]:
        """Counters reported by the /health endpoint."""
        return {
            "enabled": self._enabled,
            "connected": self.is_available,
            "last_successful_operation": self._last_successful_operation.isoformat()
            if self._last_successful_operation
            else None,
            "failure_count": self._failure_count,
            "total_operations": self._total_operations,
        }

    def _track(self, *, ok: bool) -> None:
        self._total_operations += 1
        if ok:
            self._last_successful_operation = datetime.now(UTC)
        else:
            self._failure_count += 1

    async def get(self, key: str) -> str | None:
        if not self.is_available or not self._client:
            return None

        try:
            value = await self._client.get(key)
        except RedisError as e:
            self._track(ok=False)
            logger.warning("redis_get_failed", extra={"key": key, "error": str(e)})
            return None
        self._track(ok=True)
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store a value with an expiry. Returns False when nothing was stored."""
        if not self.is_available or not self._client:
            return False

        try:
            await self._client.setex(key, ttl_seconds, value)
        except RedisError as e:
            self._track(ok=False)
            logger.warning("redis_set_failed", extra={"key": key, "error": str(e)})
            return False
        self._track(ok=True)
        return True

    async def get_json(self, key: str) -> Any | None:  # noqa: ANN401
        """Load a JSON value, treating unreadable entries as a miss."""
        raw = await self.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("redis_cached_value_corrupt", extra={"key": key, "error": str(e)})
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> bool:  # noqa: ANN401
        return await self.set(key, json.dumps(value), ttl_seconds)

    @with_retry(max_retries=3, base_delay=0.1)
    async def _delete_keys(self, *keys: str) -> None:
        if self._client:
            await self._client.delete(*keys)

    async def delete(self, *keys: str) -> bool:
        """Delete keys, retrying transient failures."""
        if not self.is_available or not keys:
            return False

        try:
            await self._delete_keys(*keys)
        except RedisError:
            self._track(ok=False)
            return False
        self._track(ok=True)
        return True

    async def keys(self, pattern: str) -> list[str]:
        """Keys matching a glob pattern, found with SCAN rather than KEYS."""
        if not self.is_available or not self._client:
            return []

        try:
            found = [key async for key in self._client.scan_iter(match=pattern)]
        except RedisError as e:
            self._track(ok=False)
            logger.warning("redis_scan_failed", extra={"pattern": pattern, "error": str(e)})
            return []
        self._track(ok=True)
        return [k.decode() if isinstance(k, bytes) else k for k in found]

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching a pattern and return how many were found."""
        found = await self.keys(pattern)
        if found and not await self.delete(*found):
            return 0
        return len(found)

    async def increment(self, key: str) -> int | None:
        """Increment a counter, returning the new value or None on failure."""
        if not self.is_available or not self._client:
            return None

        try:
            value = await self._client.incr(key)
        except RedisError as e:
            self._track(ok=False)
            logger.warning("redis_incr_failed", extra={"key": key, "error": str(e)})
            return None
        self._track(ok=True)
        return int(value)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if not self.is_available or not self._client:
            return False

        try:
            await self._client.expire(key, ttl_seconds)
        except RedisError as e:
            self._track(ok=False)
            logger.warning("redis_expire_failed", extra={"key": key, "error": str(e)})
            return False
        self._track(ok=True)
        return True

    async def ping(self) -> bool:
        if not self.is_available or not self._client:
            return False

        try:
            return bool(await self._client.ping())
        except RedisError as e:
            self._track(ok=False)
            logger.warning("redis_ping_failed", extra={"error": str(e)})
            return False

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            logger.info("redis_closed")


redis_client = RedisClient()
