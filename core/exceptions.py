"""
Custom exception classes for the application.

All exceptions inherit from AppException and include:
- error_code: Machine-readable error code
- message: Human-readable error message
- status_code: HTTP status code to return

Each generation stage raises exactly one of these; the API layer maps
them to JSON responses without further interpretation.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors."""

    error_code: str = "internal_error"
    message: str = "An unexpected error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        """Extra HTTP headers to send with the error response."""
        return None

    def response_fields(self) -> dict[str, Any]:
        """Top-level fields merged into the error response body."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class AuthenticationError(AppException):
    """Raised when the bearer credential is missing, malformed or rejected."""

    error_code = "authentication_failed"
    message = "Authentication failed"
    status_code = 401


class ValidationError(AppException):
    """Raised when the request body is malformed or the image is missing."""

    error_code = "validation_error"
    message = "Invalid input"
    status_code = 400


class RateLimitError(AppException):
    """Raised when rate limit is exceeded."""

    error_code = "rate_limit_exceeded"
    message = "Rate limit exceeded. Please wait a moment."
    status_code = 429

    def __init__(self, retry_after: int, message: str | None = None, **kwargs):
        self.retry_after = retry_after
        super().__init__(message=message, **kwargs)

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}

    def response_fields(self) -> dict[str, Any]:
        return {"retryAfter": self.retry_after}


class ContentRejectedError(AppException):
    """Raised when the uploaded image fails moderation."""

    error_code = "content_rejected"
    message = "The uploaded image does not contain a suitable subject"
    status_code = 400


class QuotaExceededError(AppException):
    """Raised when the free weekly allowance is used up and no credits remain."""

    error_code = "quota_exceeded"
    message = "Weekly free limit reached. Purchase credits to continue."
    status_code = 403

    def response_fields(self) -> dict[str, Any]:
        return {"limitReached": True}


class ExternalServiceError(AppException):
    """Raised when an external service (moderation, identity) fails."""

    error_code = "external_service_error"
    message = "External service unavailable"
    status_code = 500


class GenerationError(AppException):
    """Raised when the generation provider rejects or fails a job."""

    error_code = "generation_failed"
    message = "Image generation failed"
    status_code = 500


class GenerationTimeoutError(AppException):
    """Raised when a job does not reach a terminal state before the deadline."""

    error_code = "generation_timeout"
    message = "Generation timed out"
    status_code = 504


class PersistenceError(AppException):
    """Raised when the generation record or balance update cannot be written."""

    error_code = "persistence_failed"
    message = "Failed to save generation result"
    status_code = 500


class ConfigurationError(AppException):
    """Raised when a required server setting is missing."""

    error_code = "configuration_error"
    message = "Missing server configuration"
    status_code = 500


class RequestCancelledError(AppException):
    """Raised when the caller disconnects while a job is being polled."""

    error_code = "request_cancelled"
    message = "Request cancelled by client"
    status_code = 499
