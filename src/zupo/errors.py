"""Error taxonomy for zupo.

``ValidationError`` and ``ProviderError`` are fatal to the call that raised
them.  Per-waypoint search failures never surface as exceptions; the route
engine turns them into an empty place list.
"""
from __future__ import annotations


class ZupoError(Exception):
    """Base class for every error zupo raises on purpose."""


class MissingApiKeyError(ZupoError):
    def __init__(self) -> None:
        super().__init__("missing API key: set GOOGLE_PLACES_API_KEY or use --api-key")


class ValidationError(ZupoError):
    """Bad user input, detected before any network activity."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"validation error on '{field}': {message}")


class ProviderError(ZupoError):
    """HTTP/transport failure or an unusable provider response.

    ``status`` is the HTTP status code, or 0 when there was no usable HTTP
    response (network error, empty route, unparseable body).
    """

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"API error (HTTP {status}): {message}")
