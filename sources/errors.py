"""Error taxonomy for article providers.

Retryable:
    RateLimitError, RequestTimeoutError, NetworkError, and ProviderError
    with status 408 or 5xx

Not retried:
    other 4xx ProviderError, ValidationError, ConfigurationError

RetriesExhaustedError is raised by with_retry once the attempt budget is
spent; it carries the last underlying error.
"""

RETRYABLE_STATUSES = frozenset({408, 429})


class BriefingError(Exception):
    """Base error for the briefing pipeline."""

    def __init__(self, message: str, source: str = "unknown"):
        super().__init__(message)
        self.message = message
        self.source = source

    def to_dict(self) -> dict:
        return {"type": type(self).__name__, "message": self.message, "source": self.source}


class ProviderError(BriefingError):
    """Non-2xx or malformed response from an article provider."""

    def __init__(self, message: str, source: str = "unknown", status: int | None = None):
        super().__init__(message, source)
        self.status = status

    def to_dict(self) -> dict:
        return {**super().to_dict(), "status": self.status}


class RateLimitError(ProviderError):
    """HTTP 429 or a provider rate-limit signal."""

    def __init__(self, message: str, source: str = "unknown", retry_after: float | None = None):
        super().__init__(message, source, status=429)
        self.retry_after = retry_after


class RequestTimeoutError(BriefingError):
    """Request exceeded its timeout."""


class NetworkError(BriefingError):
    """DNS or connection failure."""


class ValidationError(BriefingError):
    """A transformed article failed required-field checks."""

    def __init__(self, message: str, source: str = "unknown", errors: list[str] | None = None):
        super().__init__(message, source)
        self.errors = errors or []


class ConfigurationError(BriefingError):
    """Missing or invalid provider configuration (e.g. no API key)."""


class RetriesExhaustedError(BriefingError):
    """Every retry attempt failed."""

    def __init__(self, source: str, attempts: int, last_error: BaseException):
        super().__init__(f"{source} failed after {attempts} attempts: {last_error}", source)
        self.attempts = attempts
        self.last_error = last_error


def is_retryable(error: BaseException) -> bool:
    """True if the error is transient and the request should be retried."""
    if isinstance(error, (RateLimitError, RequestTimeoutError, NetworkError)):
        return True
    if isinstance(error, ProviderError) and error.status is not None:
        return error.status in RETRYABLE_STATUSES or error.status >= 500
    return False
