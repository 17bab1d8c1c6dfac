"""Short code generation.

Codes are drawn from the OS CSPRNG: 6 random bytes, URL-safe base64 encoded
with padding stripped, truncated to at most 8 characters (6 bytes encode to
exactly 8). Uniqueness is not enforced here; the service checks the store
and the store's unique constraint is the final arbiter.

Example:
    >>> code = generate_short_code()
    >>> len(code)
    8
"""

import base64
import secrets
import string

__all__ = ["SHORT_CODE_ALPHABET", "SHORT_CODE_BYTES", "SHORT_CODE_MAX_LENGTH", "generate_short_code"]

SHORT_CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"
SHORT_CODE_BYTES = 6
SHORT_CODE_MAX_LENGTH = 8


def generate_short_code() -> str:
    # A failing entropy source raises; there is no weaker fallback.
    raw = secrets.token_bytes(SHORT_CODE_BYTES)
    encoded = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
    return encoded[:SHORT_CODE_MAX_LENGTH]
