"""IP-based admission control for the write path.

Flow Diagram — check_rate_limit()
=================================
::
    ┌─────────────┐
    │ INCR + EXPIRE│
    │ rate_limit:  │
    │ <client_id>  │
    └──────┬──────┘
    ERROR?  │
    ┌──────┴──────┐
    │ YES         │ NO
    ▼             ▼
┌─────────┐  ┌───────────┐
│ allow   │  │ count >   │
│ (fail   │  │ limit?    │
│ open)   │  └─────┬─────┘
└─────────┘   YES  │  NO
              ┌────┴────┐
              ▼         ▼
           deny      allow

Known behaviour
===============
This is a fixed window whose expiry is reset on every request, not only on
the first one. A client that keeps sending at least one request per window
keeps the counter alive and never returns to zero; only a full quiet window
resets it. This matches the original service and is kept as is.

Without a configured cache the NullCache always reports a count of 0, so
every request is admitted.
"""

import logging

from prometheus_client import Counter

from shortener.cache import URLCache, rate_limit_key
from shortener.config import Settings
from shortener.enums import RateLimitDecision
from shortener.exceptions import CacheError, RateLimitExceededError

__all__ = ["RateLimiter"]

RATE_LIMIT_DECISIONS_TOTAL = Counter(
    "url_shortener_rate_limit_decisions_total",
    "Admission control decisions on the shorten endpoint",
    ["decision"],
)


class RateLimiter:
    def __init__(self, cache: URLCache, settings: Settings, logger: logging.Logger | logging.LoggerAdapter):
        self._cache = cache
        self._limit = settings.RATE_LIMIT_REQUESTS
        self._window_seconds = settings.RATE_LIMIT_WINDOW_SECONDS
        self._logger = logger

    async def check_rate_limit(self, client_id: str) -> bool:
        """Count this request against client_id and report whether it is admitted."""
        try:
            count = await self._cache.increment_and_expire(rate_limit_key(client_id), self._window_seconds)
        except CacheError as exc:
            self._logger.warning(f"Rate limiter cache unavailable, allowing {client_id}: {exc}")
            RATE_LIMIT_DECISIONS_TOTAL.labels(decision=RateLimitDecision.FAIL_OPEN).inc()
            return True

        if count > self._limit:
            self._logger.info(f"Rate limit exceeded for {client_id}: {count}/{self._limit}")
            RATE_LIMIT_DECISIONS_TOTAL.labels(decision=RateLimitDecision.DENIED).inc()
            return False

        RATE_LIMIT_DECISIONS_TOTAL.labels(decision=RateLimitDecision.ALLOWED).inc()
        return True

    async def enforce(self, client_id: str) -> None:
        if not await self.check_rate_limit(client_id):
            raise RateLimitExceededError(client_id)
