"""FastAPI application entry point for the URL shortener service.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_app()│
    │ + metrics   │
    │ + routes    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ build_      │
    │ container() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ container.  │
    │ close()     │
    └─────────────┘

How to Use
===========
**Step 1 — Run**::
    python -m shortener
    # or
    uvicorn shortener.main:app --host 0.0.0.0 --port 8080

**Step 2 — Make API calls**::
    curl http://localhost:8080/health

    curl -X POST http://localhost:8080/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com"}'

    curl -i http://localhost:8080/<short_code>

Key Behaviours
===============
- Settings are read once and passed into create_app().
- Database tables are created on startup.
- Without REDIS_URL the service runs with the no-op cache.
- Body validation failures answer 400 instead of FastAPI's default 422.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app", "create_app", "main"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.config import Settings, get_settings
from shortener.dependencies import build_container
from shortener.enums import RequestStatus
from shortener.routes import router
from shortener.url_service import URL_CREATION_REQUESTS_TOTAL


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if request.url.path == "/shorten":
        URL_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
    return JSONResponse(status_code=400, content={"detail": "Invalid request format"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        container = await build_container(settings)
        app.state.container = container
        container.logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
        yield
        container.logger.info(f"{settings.APP_NAME} shutting down")
        await container.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="URL shortener with cache-then-store resolution",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # /metrics must be registered before the /{short_code} catch-all.
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run("shortener.main:app", host="0.0.0.0", port=settings.PORT)
