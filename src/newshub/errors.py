from __future__ import annotations

from typing import Optional


class FetchError(Exception):
    """Raised when a provider request cannot produce articles."""


class TransportError(FetchError):
    """The provider could not be reached, or the request timed out."""


class HttpError(FetchError):
    """The provider answered with a non-success status."""

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        text = f"HTTP {status}"
        if message:
            text += f": {message}"
        super().__init__(text)


class DecodeError(FetchError):
    """The provider payload could not be decoded."""


class UnsupportedQueryError(FetchError, ValueError):
    """A query kind was routed to a source that cannot serve it."""


class SourceUnavailableError(FetchError):
    """A query kind is routed to a source that is not configured."""


class EmptyInputError(ValueError):
    """A required query parameter was empty."""
