"""FastAPI route definitions for the URL shortener REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    GET  /health/ready
        └─ ReadinessResponse (200) or 503

    POST /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/429/500

    GET  /:short_code
        └─ 301 Redirect or 400/404/500

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate &  │
    │ Parse       │
    │ (Pydantic)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Rate limit  │  POST /shorten only
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Call Service│  under REQUEST_TIMEOUT_SECONDS
    │ Layer       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Map errors  │
    │ to status   │
    └─────────────┘

Key Behaviours
===============
- Every service call runs inside asyncio.timeout(); expiry cancels the
  in-flight store/cache awaits and answers 504.
- Error bodies carry fixed, generic messages; details go to the log only.
- 301 redirects are used, matching a permanent mapping.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse

from shortener.dependencies import RequestContext, get_rate_limiter, get_request_context, get_url_service
from shortener.enums import HealthStatus
from shortener.exceptions import (
    CacheError,
    DependencyError,
    InvalidInputError,
    RateLimitExceededError,
    ShortCodeNotFoundError,
    ShortenFailedError,
)
from shortener.rate_limiter import RateLimiter
from shortener.schemas import HealthResponse, ReadinessResponse, ShortenRequest, ShortenResponse
from shortener.url_service import URLShorteningService

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    return HealthResponse(status=HealthStatus.HEALTHY, service=ctx.settings.APP_NAME)


@router.get("/health/ready", response_model=ReadinessResponse, tags=["health"])
async def readiness_check(ctx: RequestContext = Depends(get_request_context)) -> JSONResponse:
    container = ctx.container
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY if container.cache.enabled else HealthStatus.DISABLED

    try:
        async with asyncio.timeout(ctx.settings.REQUEST_TIMEOUT_SECONDS):
            await container.repository.ping()
    except (DependencyError, TimeoutError) as e:
        ctx.logger.error(f"Database readiness check failed: {e!r}")
        db_status = HealthStatus.UNHEALTHY

    if container.cache.enabled:
        try:
            async with asyncio.timeout(ctx.settings.REQUEST_TIMEOUT_SECONDS):
                await container.cache.ping()
        except (CacheError, TimeoutError) as e:
            ctx.logger.warning(f"Cache readiness check failed: {e!r}")
            cache_status = HealthStatus.UNHEALTHY

    # The cache is optional; only the database decides readiness.
    status = HealthStatus.HEALTHY if db_status is HealthStatus.HEALTHY else HealthStatus.UNHEALTHY
    body = ReadinessResponse(status=status, database=db_status, cache=cache_status)
    return JSONResponse(
        status_code=200 if status is HealthStatus.HEALTHY else 503,
        content=body.model_dump(mode="json"),
    )


@router.post("/shorten", response_model=ShortenResponse, status_code=201, tags=["urls"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> ShortenResponse:
    ctx.logger.info(
        f"URL shortening requested: {payload.url}",
        extra={"operation": "shorten", "target_url": payload.url},
    )

    try:
        async with asyncio.timeout(ctx.settings.REQUEST_TIMEOUT_SECONDS):
            await rate_limiter.enforce(ctx.client_id)
            result = await service.shorten_url(payload.url)
    except RateLimitExceededError as exc:
        ctx.logger.warning(f"Rate limit exceeded for {ctx.client_id}")
        raise HTTPException(status_code=429, detail="Rate limit exceeded") from exc
    except ShortenFailedError as exc:
        ctx.logger.error(f"URL shortening failed after {ctx.get_duration():.1f}ms: {exc}")
        raise HTTPException(status_code=500, detail="Failed to shorten URL") from exc
    except TimeoutError as exc:
        ctx.logger.error(f"URL shortening timed out after {ctx.get_duration():.1f}ms")
        raise HTTPException(status_code=504, detail="Request timed out") from exc

    ctx.logger.info(
        f"URL shortened successfully: {result.short_code}",
        extra={"operation": "shorten", "short_code": result.short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(
        short_code=result.short_code,
        original_url=result.original_url,
        short_url=result.short_url,
    )


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    try:
        async with asyncio.timeout(ctx.settings.REQUEST_TIMEOUT_SECONDS):
            original_url = await service.resolve_url(short_code)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail="Short code is required") from exc
    except ShortCodeNotFoundError as exc:
        ctx.logger.warning(f"Redirect failed - short code not found: {short_code}")
        raise HTTPException(status_code=404, detail="Short code not found") from exc
    except DependencyError as exc:
        ctx.logger.error(f"Redirect failed for {short_code}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc
    except TimeoutError as exc:
        ctx.logger.error(f"Redirect timed out for {short_code} after {ctx.get_duration():.1f}ms")
        raise HTTPException(status_code=504, detail="Request timed out") from exc

    ctx.logger.info(
        f"Redirect successful: {short_code} -> {original_url}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=original_url, status_code=301)
