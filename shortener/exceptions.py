"""Error taxonomy for the URL shortener.

Every failure the service layer can surface is a subclass of
``ShortenerError``. The HTTP boundary maps each kind onto a status code and
a generic message; exception text (SQL, connection strings) stays in logs.

Error Mapping
=============
::
    InvalidInputError        -> 400
    ShortCodeNotFoundError   -> 404
    RateLimitExceededError   -> 429
    DependencyError          -> 500
    └─ ShortenFailedError    -> 500
    DuplicateShortCodeError  -> internal (regenerate and retry)
    CacheError               -> internal (absorbed: miss / allow)
"""

__all__ = [
    "ShortenerError",
    "InvalidInputError",
    "ShortCodeNotFoundError",
    "RateLimitExceededError",
    "DependencyError",
    "ShortenFailedError",
    "DuplicateShortCodeError",
    "CacheError",
]


class ShortenerError(Exception):
    """Base class for all URL shortener errors."""


class InvalidInputError(ShortenerError):
    """Malformed URL or empty short code."""


class ShortCodeNotFoundError(ShortenerError):
    """No record exists for the requested short code."""

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' not found")
        self.short_code = short_code


class RateLimitExceededError(ShortenerError):
    """The client exhausted its request budget for the current window."""

    def __init__(self, client_id: str):
        super().__init__(f"Rate limit exceeded for client '{client_id}'")
        self.client_id = client_id


class DependencyError(ShortenerError):
    """A durable store operation failed unexpectedly."""


class ShortenFailedError(DependencyError):
    """The shorten operation could not complete."""


class DuplicateShortCodeError(ShortenerError):
    """The store rejected an insert because the short code is taken."""

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' already exists")
        self.short_code = short_code


class CacheError(ShortenerError):
    """A cache operation failed; callers treat this as a miss or allow."""
