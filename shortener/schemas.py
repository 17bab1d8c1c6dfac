"""Pydantic schemas for request/response validation in the URL shortener.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ url: str (non-empty, absolute, validated)

    ShortenResponse (Output)
    ├─ short_code: str
    ├─ original_url: str
    └─ short_url: str

    HealthResponse (Output)
    ├─ status: HealthStatus
    └─ service: str

    ReadinessResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

How to Use
===========
**Step 1 — Input validation**::
    @router.post("/shorten")
    async def shorten_url(payload: ShortenRequest):
        # payload.url is already a syntactically valid absolute URL
        ...

**Step 2 — Response serialization**::
    result = await service.shorten_url(payload.url)
    return ShortenResponse(
        short_code=result.short_code,
        original_url=result.original_url,
        short_url=result.short_url,
    )

Key Behaviours
===============
- URL validation uses the validators library; nothing beyond syntax is
  checked (no reachability, no blocklists).
- Validation failures are turned into HTTP 400 by the app's exception handler.
"""

import validators
from pydantic import BaseModel, field_validator

from shortener.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "HealthResponse",
    "ReadinessResponse",
]


class ShortenRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v:
            raise ValueError("URL is required")
        if not validators.url(v, simple_host=True):
            raise ValueError("Invalid URL provided")
        return v


class ShortenResponse(BaseModel):
    short_code: str
    original_url: str
    short_url: str


class HealthResponse(BaseModel):
    status: HealthStatus
    service: str


class ReadinessResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
