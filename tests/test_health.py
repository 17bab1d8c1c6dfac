"""Health endpoint tests."""

import pytest
from httpx import AsyncClient

from shortener.enums import HealthStatus


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["service"] == "url-shortener"


@pytest.mark.asyncio
async def test_health_check_ignores_dependencies(client: AsyncClient, repository, cache) -> None:
    repository.fail = True
    cache.fail = True
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_readiness_check(client: AsyncClient) -> None:
    response = await client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == HealthStatus.HEALTHY.value
    assert data["database"] == HealthStatus.HEALTHY.value
    assert data["cache"] == HealthStatus.HEALTHY.value


@pytest.mark.asyncio
async def test_readiness_degraded_cache_is_still_ready(client: AsyncClient, cache) -> None:
    cache.fail = True
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["cache"] == HealthStatus.UNHEALTHY.value


@pytest.mark.asyncio
async def test_readiness_fails_without_database(client: AsyncClient, repository) -> None:
    repository.fail = True
    response = await client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == HealthStatus.UNHEALTHY.value
    assert data["database"] == HealthStatus.UNHEALTHY.value


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient) -> None:
    response = await client.get("/metrics")
    assert response.status_code == 200
