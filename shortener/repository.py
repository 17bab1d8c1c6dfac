"""PostgreSQL-backed durable store for short code mappings.

The repository is the single source of truth. It opens one session per
operation from a shared ``async_sessionmaker``, so one instance can be
constructed at startup and used by every concurrent request.

Flow Diagram — create_url()
===========================
::
    ┌─────────────┐
    │ INSERT urls │
    │ + COMMIT    │
    └──────┬──────┘
     OK?   │
    ┌──────┴───────────────┬───────────────────┐
    │ YES                  │ IntegrityError    │ other DB error
    ▼                      ▼                   ▼
┌─────────┐         ┌─────────────┐     ┌─────────────┐
│ REFRESH │         │ ROLLBACK    │     │ ROLLBACK    │
│ return  │         │ Duplicate-  │     │ Dependency- │
│ URL     │         │ ShortCode   │     │ Error       │
└─────────┘         └─────────────┘     └─────────────┘

Key Behaviours
===============
- A failed insert is rolled back; no partial record is ever observable.
- The unique constraint, not short_code_exists(), decides who owns a code.
- Driver errors are chained, never reformatted into user-facing text.

Classes:
    URLRepository:  CreateURL / GetURLByShortCode / ShortCodeExists contract.
"""

import logging

from sqlalchemy import exists, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.exceptions import DependencyError, DuplicateShortCodeError, ShortCodeNotFoundError
from shortener.models import URL

__all__ = ["URLRepository"]

logger = logging.getLogger("urlshortener.repository")


class URLRepository:
    """Durable store contract over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_url(self, original_url: str, short_code: str) -> URL:
        """Insert a new mapping.

        Raises:
            DuplicateShortCodeError: The short code is already owned.
            DependencyError: Any other store failure.
        """
        async with self._session_factory() as session:
            url = URL(original_url=original_url, short_code=short_code)
            session.add(url)
            try:
                await session.commit()
                await session.refresh(url)
            except IntegrityError as exc:
                await session.rollback()
                logger.info(f"Insert rejected, short code already exists: {short_code}")
                raise DuplicateShortCodeError(short_code) from exc
            except (SQLAlchemyError, OSError) as exc:
                await session.rollback()
                logger.error(f"Failed to create URL for {short_code}: {exc}")
                raise DependencyError("failed to create URL") from exc
            return url

    async def get_url_by_short_code(self, short_code: str) -> URL:
        """Fetch a mapping by code.

        Raises:
            ShortCodeNotFoundError: No such code.
            DependencyError: The lookup itself failed.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(URL).where(URL.short_code == short_code))
                url = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to get URL for {short_code}: {exc}")
            raise DependencyError("failed to get URL") from exc

        if url is None:
            raise ShortCodeNotFoundError(short_code)
        return url

    async def short_code_exists(self, short_code: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(exists().where(URL.short_code == short_code)))
                return bool(result.scalar())
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to check short code {short_code}: {exc}")
            raise DependencyError("failed to check short code uniqueness") from exc

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise DependencyError("database unreachable") from exc
