"""Custom exception hierarchy for pyfeeding."""

from __future__ import annotations


class FeedingError(Exception):
    """Base exception for all pyfeeding errors."""


class FeedingConfigError(FeedingError):
    """Invalid or missing configuration."""


class FeedingStoreError(FeedingError):
    """A state or history backend could not be read or written.

    The reconciler and history store catch this and degrade to an
    absent value or a no-op; it only reaches callers that talk to a
    backend directly.
    """


class FeedingTransportError(FeedingStoreError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FeedingMalformedValueError(FeedingStoreError):
    """A persisted value could not be parsed into the expected shape."""
