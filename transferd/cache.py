"""Key-value cache with simple distributed locks, backed by Redis."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Protocol

import redis

from .config import Config

_log = logging.getLogger(__name__)

LOCK_PREFIX = "lock:"
_LOCK_VALUE = "locked"


class Cache(Protocol):
    """Operations the services need from a cache."""

    def get(self, key: str) -> str: ...

    def set(self, key: str, value: str, expiration: float | timedelta = 0) -> None: ...

    def delete(self, key: str) -> None: ...

    def lock(self, key: str, expiration: float | timedelta = 0) -> bool: ...

    def release(self, key: str) -> None: ...

    def close(self) -> None: ...


def _millis(expiration: float | timedelta | None) -> int | None:
    """Convert an expiration to milliseconds; zero or less means no expiry."""
    if isinstance(expiration, timedelta):
        seconds = expiration.total_seconds()
    else:
        seconds = float(expiration or 0)
    if seconds <= 0:
        return None
    return max(1, int(seconds * 1000))


class RedisCache:
    """Cache implementation over a Redis client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def get(self, key: str) -> str:
        """Return the value stored under key; raise KeyError if there is none."""
        value = self._client.get(key)
        if value is None:
            raise KeyError(key)
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def set(self, key: str, value: str, expiration: float | timedelta = 0) -> None:
        """Store value under key, expiring after the given seconds if positive."""
        self._client.set(key, value, px=_millis(expiration))

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def lock(self, key: str, expiration: float | timedelta = 0) -> bool:
        """Take the lock for key if nobody holds it; return whether it was taken."""
        taken = self._client.set(LOCK_PREFIX + key, _LOCK_VALUE, nx=True, px=_millis(expiration))
        return bool(taken)

    def release(self, key: str) -> None:
        """Give up the lock for key."""
        self._client.delete(LOCK_PREFIX + key)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RedisCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_redis_cache(config: Config) -> RedisCache:
    """Connect to Redis as configured and check that it answers."""
    client = redis.Redis(
        host=config.redis.host,
        port=int(config.redis.port),
        password=config.redis.password or None,
        db=config.redis.db,
        decode_responses=True,
    )
    try:
        client.ping()
    except Exception:
        client.close()
        raise
    _log.info("Connected to Redis cache")
    return RedisCache(client)