"""URL Shortener Service Layer - Core Business Logic

This module orchestrates short code generation, uniqueness enforcement,
persistence, cache population and the tiered cache-then-store lookup.

Architecture Overview
=====================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    Service Layer                            │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │   URL Service   │  │ Code Generator  │  │ Rate Limiter │ │
    │  │                 │  │                 │  │              │ │
    │  │ • Shorten URLs  │  │ • 6 random bytes│  │ • INCR+EXPIRE│ │
    │  │ • Resolve codes │  │ • base64url     │  │ • Fail open  │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                                        │
                ▼                                        ▼
    ┌─────────────────┐                      ┌─────────────────┐
    │   PostgreSQL    │                      │     Redis       │
    │ (source of truth)│                     │ (optional cache)│
    └─────────────────┘                      └─────────────────┘

Request Flow Diagrams
=====================

Shorten Flow
------------
::
    ┌─────────────┐
    │ Generate    │◄─────────────┐
    │ candidate   │              │
    └──────┬──────┘              │
           ▼                     │
    ┌─────────────┐   exists     │
    │ Exists in   ├──────────────┤
    │ PostgreSQL? │              │
    └──────┬──────┘              │
           ▼ no                  │
    ┌─────────────┐  duplicate   │
    │ INSERT      ├──────────────┘  (bounded by SHORT_CODE_MAX_ATTEMPTS)
    │ (unique)    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache url:  │  best effort, TTL 24h
    │ <code>      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return      │
    │ result      │
    └─────────────┘

Resolve Flow
------------
::
    ┌─────────────┐
    │ GET url:code│
    │ (cache)     │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO / ERROR │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Query   │  │ Return  │
│PostgreSQL│ │ cached  │
└────┬────┘  └─────────┘
     ▼
┌─────────┐
│ Refill  │  best effort, TTL 24h
│ cache   │
└─────────┘

Key Behaviours
==============
- The existence check is an optimisation; the unique index decides.
- A lost insert race consumes one attempt and generates a new candidate.
- Cache failures are logged and treated as a miss; they never fail a call.
- Store failures surface as DependencyError / ShortenFailedError.
- Store "not found" is the only authoritative miss.

Usage Examples
==============
```python
service = URLShorteningService(repository, cache, settings, logger)
result = await service.shorten_url("https://example.com")
original = await service.resolve_url(result.short_code)
```
"""

import logging
import time
from dataclasses import dataclass

from prometheus_client import Counter, Histogram

from shortener import generator
from shortener.cache import URLCache, url_cache_key
from shortener.config import Settings
from shortener.enums import CacheStatus, RequestStatus
from shortener.exceptions import (
    CacheError,
    DependencyError,
    DuplicateShortCodeError,
    InvalidInputError,
    ShortCodeNotFoundError,
    ShortenFailedError,
)
from shortener.models import URL
from shortener.repository import URLRepository

__all__ = ["ShortenResult", "URLShorteningService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

URL_CREATION_REQUESTS_TOTAL = Counter(
    "url_shortener_creation_requests_total",
    "Total URL creation requests",
    ["status"],
)
URL_LOOKUP_REQUESTS_TOTAL = Counter(
    "url_shortener_lookup_requests_total",
    "Total URL lookup requests",
    ["status", "cache_hit"],
)
URL_CREATION_DURATION = Histogram(
    "url_shortener_creation_duration_seconds",
    "Time taken to create short URLs",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
URL_LOOKUP_DURATION = Histogram(
    "url_shortener_lookup_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
SHORT_CODE_COLLISIONS_TOTAL = Counter(
    "url_shortener_short_code_collisions_total",
    "Generated candidates rejected because the code was taken",
    ["stage"],
)
CACHE_ERRORS_TOTAL = Counter(
    "url_shortener_cache_errors_total",
    "Cache operations that failed and were absorbed",
    ["operation"],
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class ShortenResult:
    short_code: str
    original_url: str
    short_url: str


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================

class URLShorteningService:
    """Core service for shortening URLs and resolving short codes.

    One instance is built at startup and shared by all requests; it holds
    no mutable state of its own beyond the injected store and cache handles.

    Example:
        >>> service = URLShorteningService(repository, NullCache(), settings, logger)
        >>> result = await service.shorten_url("https://example.com")
        >>> await service.resolve_url(result.short_code)
        'https://example.com'
    """

    def __init__(
        self,
        repository: URLRepository,
        cache: URLCache,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self._repository = repository
        self._cache = cache
        self._settings = settings
        self._logger = logger

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def shorten_url(self, original_url: str) -> ShortenResult:
        """Assign a fresh short code to original_url and persist the mapping.

        Args:
            original_url: Absolute URL, already syntactically validated.

        Returns:
            ShortenResult: The code, the URL and the fully qualified short URL.

        Raises:
            ShortenFailedError: Generation failed, the store failed, or no
                unique code was found within SHORT_CODE_MAX_ATTEMPTS.
        """
        start_time = time.perf_counter()
        status = RequestStatus.ERROR
        self._logger.info(f"Creating short URL for: {original_url}")

        try:
            url = await self._create_with_unique_code(original_url)
            await self._populate_cache(url.short_code, url.original_url)
            status = RequestStatus.SUCCESS
        except ShortenFailedError as exc:
            self._logger.error(f"URL creation error: {exc}")
            raise
        finally:
            # Also runs when the request deadline cancels the await.
            duration = time.perf_counter() - start_time
            URL_CREATION_DURATION.observe(duration)
            URL_CREATION_REQUESTS_TOTAL.labels(status=status).inc()

        self._logger.info(f"URL created successfully: {url.short_code} in {duration:.3f}s")

        return ShortenResult(
            short_code=url.short_code,
            original_url=url.original_url,
            short_url=self.build_short_url(url.short_code),
        )

    async def resolve_url(self, short_code: str) -> str:
        """Return the original URL for short_code, cache first.

        Raises:
            InvalidInputError: short_code is empty.
            ShortCodeNotFoundError: The store has no such code.
            DependencyError: The store lookup failed.
        """
        if not short_code:
            raise InvalidInputError("short code must not be empty")

        start_time = time.perf_counter()
        try:
            cached_url = await self._lookup_from_cache(short_code)
            if cached_url:
                URL_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=CacheStatus.HIT).inc()
                self._logger.debug(f"Cache hit for {short_code}")
                return cached_url

            try:
                url = await self._repository.get_url_by_short_code(short_code)
            except ShortCodeNotFoundError:
                URL_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache_hit=CacheStatus.MISS).inc()
                self._logger.info(f"Short code not found: {short_code}")
                raise
            except DependencyError as exc:
                URL_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, cache_hit=CacheStatus.MISS).inc()
                self._logger.error(f"URL lookup error for {short_code}: {exc}")
                raise

            await self._populate_cache(short_code, url.original_url)
            URL_LOOKUP_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=CacheStatus.MISS).inc()
            self._logger.debug(f"Database hit and cached for {short_code}")
            return url.original_url
        finally:
            URL_LOOKUP_DURATION.observe(time.perf_counter() - start_time)

    def build_short_url(self, short_code: str) -> str:
        return f"{self._settings.BASE_URL.rstrip('/')}/{short_code}"

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _create_with_unique_code(self, original_url: str) -> URL:
        max_attempts = self._settings.SHORT_CODE_MAX_ATTEMPTS

        for attempt in range(1, max_attempts + 1):
            try:
                short_code = generator.generate_short_code()
            except (OSError, NotImplementedError) as exc:
                raise ShortenFailedError("short code generation failed") from exc

            try:
                if await self._repository.short_code_exists(short_code):
                    SHORT_CODE_COLLISIONS_TOTAL.labels(stage="exists").inc()
                    self._logger.debug(f"Candidate {short_code} already taken (attempt {attempt}/{max_attempts})")
                    continue
                return await self._repository.create_url(original_url, short_code)
            except DuplicateShortCodeError:
                # Another writer inserted the same code after our existence check.
                SHORT_CODE_COLLISIONS_TOTAL.labels(stage="insert").inc()
                self._logger.warning(f"Lost insert race for {short_code} (attempt {attempt}/{max_attempts})")
            except DependencyError as exc:
                raise ShortenFailedError("failed to persist URL") from exc

        raise ShortenFailedError(f"no unique short code after {max_attempts} attempts")

    async def _lookup_from_cache(self, short_code: str) -> str | None:
        try:
            return await self._cache.get(url_cache_key(short_code))
        except CacheError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed for {short_code}, falling back to database: {exc}")
            return None

    async def _populate_cache(self, short_code: str, original_url: str) -> None:
        try:
            await self._cache.set(url_cache_key(short_code), original_url, self._settings.CACHE_TTL_SECONDS)
        except CacheError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            self._logger.warning(f"Cache write failed for {short_code}: {exc}")
