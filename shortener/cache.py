"""Cache contract and its Redis / no-op implementations.

The cache is optional and never authoritative. The service layer and the
rate limiter only ever talk to the ``URLCache`` interface; whether Redis is
configured is decided once, in ``create_cache()``.

Class Diagram
=============
::
    URLCache (ABC)
    ├─ get(key) -> str | None
    ├─ set(key, value, ttl)
    ├─ increment_and_expire(key, ttl) -> int
    ├─ ping()
    └─ close()
        │
        ├─ RedisCache   redis.asyncio client; errors -> CacheError
        └─ NullCache    REDIS_URL empty; always miss, count 0

Key Layout
==========
::
    url:<short_code>         -> original_url   (TTL 24h, refreshed on refill)
    rate_limit:<client_id>   -> request count  (TTL 60s, reset on every INCR)

How to Use
===========
**Step 1 — Build once at startup**::
    cache = create_cache(settings)

**Step 2 — Read and write**::
    await cache.set(url_cache_key(code), original_url, settings.CACHE_TTL_SECONDS)
    original_url = await cache.get(url_cache_key(code))

**Step 3 — Cleanup on shutdown**::
    await cache.close()

Key Behaviours
===============
- INCR and EXPIRE run in one MULTI/EXEC transaction so a counter can never
  be left without an expiry.
- RedisError and socket errors surface as CacheError; callers absorb them.
- NullCache never raises.
"""

from abc import ABC, abstractmethod

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortener.config import Settings
from shortener.exceptions import CacheError

__all__ = [
    "URLCache",
    "RedisCache",
    "NullCache",
    "create_cache",
    "url_cache_key",
    "rate_limit_key",
]

URL_KEY_PREFIX = "url"
RATE_LIMIT_KEY_PREFIX = "rate_limit"


def url_cache_key(short_code: str) -> str:
    return f"{URL_KEY_PREFIX}:{short_code}"


def rate_limit_key(client_id: str) -> str:
    return f"{RATE_LIMIT_KEY_PREFIX}:{client_id}"


class URLCache(ABC):
    """Key-value store with per-key expiry and atomic increment-with-expiry."""

    enabled: bool = True

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value, or None on a miss."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value that expires after ttl_seconds."""

    @abstractmethod
    async def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment a counter and reset its expiry; return the new count."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise CacheError if the backend is unreachable."""

    async def close(self) -> None:
        return None


class RedisCache(URLCache):
    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisCache":
        return cls(redis.from_url(redis_url, encoding="utf-8", decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as exc:
            raise CacheError(f"GET {key} failed") from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError) as exc:
            raise CacheError(f"SET {key} failed") from exc

    async def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl_seconds)
                count, _ = await pipe.execute()
        except (RedisError, OSError) as exc:
            raise CacheError(f"INCR/EXPIRE {key} failed") from exc
        return int(count)

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except (RedisError, OSError) as exc:
            raise CacheError("PING failed") from exc

    async def close(self) -> None:
        await self._client.aclose()


class NullCache(URLCache):
    """Stand-in used when no cache is configured.

    Every read misses and every write is dropped. The counter always reads
    0, so the rate limiter admits every request.
    """

    enabled = False

    async def get(self, key: str) -> str | None:
        return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        return None

    async def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        return 0

    async def ping(self) -> None:
        return None


def create_cache(settings: Settings) -> URLCache:
    if settings.cache_enabled:
        return RedisCache.from_url(settings.REDIS_URL)
    return NullCache()
