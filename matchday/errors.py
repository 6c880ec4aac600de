"""Error taxonomy shared by the ingestion, scoring and persistence layers."""

from __future__ import annotations

from typing import Optional


class APIError(RuntimeError):
    """Raised when the sports-data provider cannot serve a request.

    Used directly for generic, non-retryable failures (4xx other than 429,
    malformed payloads). Subclasses classify the transient and rate-limit cases.
    """

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(APIError):
    """HTTP 429 from the provider. Terminal: never retried."""


class ServiceUnavailableError(APIError):
    """5xx response from the provider."""

    retryable = True


class NetworkError(APIError):
    """Connection-level failure before a response was received."""

    retryable = True


class RequestTimeoutError(APIError):
    """A single attempt exceeded the per-request timeout."""

    retryable = True


class EventValidationError(ValueError):
    """A provider event is malformed or belongs to a different league."""


class PersistenceError(RuntimeError):
    """A store read or write failed."""
