"""
Custom exceptions for the ThoughtPolice analysis core.

Every exception carries a machine-readable ``error_code`` so that failed
analyses and the HTTP boundary can report the failure kind without
inspecting exception types.
"""

from typing import Optional, Dict, Any


class ThoughtPoliceError(Exception):
    """Base exception for all analysis core errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize error.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """String representation of the error."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ValidationError(ThoughtPoliceError):
    """Invalid input, such as an empty username or a negative spend."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            details={
                "field": field,
                "value": value,
                **kwargs
            }
        )


class ConfigurationError(ThoughtPoliceError):
    """Error in component configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key, **kwargs}
        )


class NetworkError(ThoughtPoliceError):
    """Base for failures talking to the listing API."""

    default_code = "FETCH_ERROR"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        error_code: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code=error_code or self.default_code,
            details={"url": url, **kwargs}
        )
        self.url = url


class NotFoundError(NetworkError):
    """The target user does not exist (HTTP 404)."""

    default_code = "NOT_FOUND"

    def __init__(self, message: str = "User not found", url: Optional[str] = None, **kwargs):
        super().__init__(message, url=url, **kwargs)


class RateLimitedError(NetworkError):
    """HTTP 429 from the listing API."""

    default_code = "RATE_LIMITED"

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        url: Optional[str] = None,
        retry_after: Optional[float] = None,
        **kwargs
    ):
        super().__init__(message, url=url, retry_after=retry_after, **kwargs)
        self.retry_after = retry_after


class ServerError(NetworkError):
    """HTTP 5xx after retries were exhausted."""

    default_code = "SERVER_ERROR"

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        url: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message or f"Server error occurred ({status_code}). Please try again.",
            url=url,
            status_code=status_code,
            **kwargs
        )
        self.status_code = status_code


class ServiceUnavailableError(ServerError):
    """HTTP 503 after retries were exhausted."""

    default_code = "SERVICE_UNAVAILABLE"

    def __init__(self, url: Optional[str] = None, **kwargs):
        super().__init__(
            503,
            message="Service temporarily unavailable. Please try again later.",
            url=url,
            **kwargs
        )


class FetchTimeoutError(NetworkError):
    """A request exceeded its timeout on every attempt."""

    default_code = "TIMEOUT"

    def __init__(self, message: str = "Request timeout. Please try again.", url: Optional[str] = None, **kwargs):
        super().__init__(message, url=url, **kwargs)


class FetchError(NetworkError):
    """Any other fetch failure: other 4xx, transport errors, invalid JSON."""

    default_code = "FETCH_ERROR"

    def __init__(self, reason: str, url: Optional[str] = None, **kwargs):
        super().__init__(f"Failed to fetch data: {reason}", url=url, **kwargs)
        self.reason = reason


class ScoringError(ThoughtPoliceError):
    """The scoring service failed or returned a malformed report."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="SCORING_ERROR",
            details={
                "endpoint": endpoint,
                "status_code": status_code,
                **kwargs
            }
        )


class AnalysisTimeoutError(ThoughtPoliceError):
    """A run exceeded its overall analysis timeout."""

    def __init__(self, timeout_seconds: float, username: Optional[str] = None):
        super().__init__(
            f"Analysis exceeded {timeout_seconds:g}s timeout",
            error_code="ANALYSIS_TIMEOUT",
            details={"timeout_seconds": timeout_seconds, "username": username}
        )
        self.timeout_seconds = timeout_seconds
