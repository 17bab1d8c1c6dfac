"""Shared pytest fixtures: in-memory store/cache fakes and an ASGI test client."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.cache import NullCache, URLCache
from shortener.config import Settings
from shortener.dependencies import ServiceContainer, get_container
from shortener.exceptions import CacheError, DependencyError, DuplicateShortCodeError, ShortCodeNotFoundError
from shortener.main import app
from shortener.models import URL
from shortener.rate_limiter import RateLimiter
from shortener.url_service import URLShorteningService


class FakeRepository:
    """In-memory stand-in for URLRepository with the same contract.

    Attributes:
        fail: Raise DependencyError from every operation.
        report_free: short_code_exists() always answers False, so concurrent
            writers race straight into create_url().
        delay: Seconds to sleep inside each operation.
    """

    def __init__(self) -> None:
        self.records: dict[str, URL] = {}
        self.fail = False
        self.report_free = False
        self.delay = 0.0
        self.duplicate_rejections = 0
        self.lookups = 0
        self._next_id = 1

    async def _io(self) -> None:
        await asyncio.sleep(self.delay)
        if self.fail:
            raise DependencyError("connection refused: postgresql://postgres:secret@db/urlshortener")

    async def create_url(self, original_url: str, short_code: str) -> URL:
        await self._io()
        if short_code in self.records:
            self.duplicate_rejections += 1
            raise DuplicateShortCodeError(short_code)
        now = datetime.now(timezone.utc)
        url = URL(id=self._next_id, original_url=original_url, short_code=short_code, created_at=now, updated_at=now)
        self._next_id += 1
        self.records[short_code] = url
        return url

    async def get_url_by_short_code(self, short_code: str) -> URL:
        await self._io()
        self.lookups += 1
        if short_code not in self.records:
            raise ShortCodeNotFoundError(short_code)
        return self.records[short_code]

    async def short_code_exists(self, short_code: str) -> bool:
        await self._io()
        if self.report_free:
            return False
        return short_code in self.records

    async def ping(self) -> None:
        await self._io()


class FakeCache(URLCache):
    """In-memory URLCache that records TTLs and can be switched to failing."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise CacheError("redis unavailable")

    def expire(self, key: str) -> None:
        """Simulate the key's TTL running out."""
        self.values.pop(key, None)
        self.ttls.pop(key, None)

    async def get(self, key: str) -> str | None:
        self._check()
        return self.values.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check()
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    async def increment_and_expire(self, key: str, ttl_seconds: int) -> int:
        self._check()
        count = int(self.values.get(key, "0")) + 1
        self.values[key] = str(count)
        self.ttls[key] = ttl_seconds
        return count

    async def ping(self) -> None:
        self._check()

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        BASE_URL="http://localhost:8080",
        REDIS_URL="redis://cache:6379/0",
        DATABASE_URL="postgresql+asyncpg://test:test@db:5432/test",
    )


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("urlshortener.tests")


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def url_service(repository, cache, settings, logger) -> URLShorteningService:
    return URLShorteningService(repository, cache, settings, logger)


@pytest.fixture
def uncached_service(repository, settings, logger) -> URLShorteningService:
    return URLShorteningService(repository, NullCache(), settings, logger)


def make_container(settings: Settings, repository, cache: URLCache, logger: logging.Logger) -> ServiceContainer:
    return ServiceContainer(
        settings=settings,
        logger=logger,
        repository=repository,
        cache=cache,
        url_service=URLShorteningService(repository, cache, settings, logger),
        rate_limiter=RateLimiter(cache, settings, logger),
    )


@pytest.fixture
def container_factory():
    return make_container


@pytest.fixture
def container(settings, repository, cache, logger) -> ServiceContainer:
    return make_container(settings, repository, cache, logger)


@pytest_asyncio.fixture(scope="function")
async def client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_container] = lambda: container

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
