"""Dependency injection for the HTTP boundary.

Shared resources (engine, repository, cache, service, rate limiter) are
built exactly once by the application lifespan into an immutable
``ServiceContainer`` stored on ``app.state``. Per-request data lives in a
lightweight ``RequestContext``. There is no module-level mutable state.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.cache import URLCache, create_cache
from shortener.config import Settings
from shortener.database import close_db, create_engine, create_session_factory, init_db
from shortener.logging_config import setup_logging
from shortener.rate_limiter import RateLimiter
from shortener.repository import URLRepository
from shortener.url_service import URLShorteningService

__all__ = [
    "ServiceContainer",
    "RequestContext",
    "build_container",
    "get_container",
    "get_request_context",
    "get_url_service",
    "get_rate_limiter",
]


# ============================================================================
# SHARED SERVICE CONTAINER
# ============================================================================


@dataclass(frozen=True)
class ServiceContainer:
    """Read-mostly handles shared by every request.

    Attributes:
        settings: Immutable configuration collected at startup
        logger: Service logger
        repository: Durable store contract
        cache: Redis cache, or the no-op stand-in when disabled
        url_service: Shorten / resolve orchestration
        rate_limiter: Admission control for the write path
        engine: Database engine, disposed on shutdown
    """

    settings: Settings
    logger: logging.Logger
    repository: URLRepository
    cache: URLCache
    url_service: URLShorteningService
    rate_limiter: RateLimiter
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        await self.cache.close()
        if self.engine is not None:
            await close_db(self.engine)


async def build_container(settings: Settings) -> ServiceContainer:
    """Create every shared resource once at startup."""
    logger = setup_logging(settings)

    engine = create_engine(settings)
    try:
        await init_db(engine)
    except Exception:
        await close_db(engine)
        raise
    repository = URLRepository(create_session_factory(engine))

    cache = create_cache(settings)
    if cache.enabled:
        logger.info("Redis cache enabled")
    else:
        logger.info("REDIS_URL not set, running without cache or rate limiting")

    return ServiceContainer(
        settings=settings,
        logger=logger,
        repository=repository,
        cache=cache,
        url_service=URLShorteningService(repository, cache, settings, logger),
        rate_limiter=RateLimiter(cache, settings, logger),
        engine=engine,
    )


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking data.

    Attributes:
        container: Shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address, used as the rate limit key
        start_time: Request start timestamp
    """

    container: ServiceContainer
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: str | None = None
    client_ip: str | None = None
    start_time: float = field(default_factory=time.time)

    @property
    def settings(self) -> Settings:
        return self.container.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger with request context attached."""
        return logging.LoggerAdapter(
            self.container.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    @property
    def client_id(self) -> str:
        return self.client_ip or "unknown"

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_request_context(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

    return RequestContext(
        container=container,
        request_id=request_id,
        user_agent=request.headers.get("user-agent"),
        client_ip=client_ip,
    )


def get_url_service(container: ServiceContainer = Depends(get_container)) -> URLShorteningService:
    return container.url_service


def get_rate_limiter(container: ServiceContainer = Depends(get_container)) -> RateLimiter:
    return container.rate_limiter
