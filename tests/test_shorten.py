"""Shorten endpoint behavior tests."""

import pytest
from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY

from shortener.dependencies import get_container
from shortener.main import app


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://example.com"})
    assert response.status_code == 201
    data = response.json()
    assert set(data) == {"short_code", "original_url", "short_url"}
    assert data["original_url"] == "https://example.com"
    assert len(data["short_code"]) == 8
    assert data["short_url"] == f"http://localhost:8080/{data['short_code']}"


@pytest.mark.asyncio
async def test_shorten_invalid_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "not-a-url"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_shorten_empty_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": ""})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_shorten_missing_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    urls = [
        "https://www.google.com",
        "https://www.github.com",
        "https://www.python.org",
    ]
    codes = set()
    for url in urls:
        response = await client.post("/shorten", json={"url": url})
        assert response.status_code == 201
        codes.add(response.json()["short_code"])
    assert len(codes) == 3


@pytest.mark.asyncio
async def test_shorten_rate_limited_after_ten(client: AsyncClient) -> None:
    for _ in range(10):
        response = await client.post("/shorten", json={"url": "https://example.com"})
        assert response.status_code == 201

    response = await client.post("/shorten", json={"url": "https://example.com"})
    assert response.status_code == 429


@pytest.mark.asyncio
async def test_shorten_not_rate_limited_when_cache_down(client: AsyncClient, cache) -> None:
    cache.fail = True
    for _ in range(15):
        response = await client.post("/shorten", json={"url": "https://example.com"})
        assert response.status_code == 201


@pytest.mark.asyncio
async def test_shorten_store_failure_hides_details(client: AsyncClient, repository) -> None:
    repository.fail = True
    response = await client.post("/shorten", json={"url": "https://example.com"})
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to shorten URL"}
    assert "postgresql" not in response.text


@pytest.mark.asyncio
async def test_shorten_times_out(settings, repository, cache, logger, container_factory) -> None:
    repository.delay = 1.0
    fast_settings = settings.model_copy(update={"REQUEST_TIMEOUT_SECONDS": 0.05})
    container = container_factory(fast_settings, repository, cache, logger)
    app.dependency_overrides[get_container] = lambda: container

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/shorten", json={"url": "https://example.com"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 504
    assert repository.records == {}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    [
        "http://localhost:3000/dashboard",
        "https://intranet/wiki",
        "http://127.0.0.1:8000/docs",
        "https://example.com/search?q=python&page=2",
    ],
)
async def test_shorten_accepts_single_label_and_ip_hosts(client: AsyncClient, url: str) -> None:
    response = await client.post("/shorten", json={"url": url})
    assert response.status_code == 201
    assert response.json()["original_url"] == url


@pytest.mark.asyncio
async def test_shorten_rejects_url_without_scheme(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "example.com/path"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invalid_body_counts_as_validation_error(client: AsyncClient) -> None:
    before = REGISTRY.get_sample_value("url_shortener_creation_requests_total", {"status": "validation_error"}) or 0.0

    response = await client.post("/shorten", json={"url": "not-a-url"})

    after = REGISTRY.get_sample_value("url_shortener_creation_requests_total", {"status": "validation_error"}) or 0.0
    assert response.status_code == 400
    assert after == before + 1
