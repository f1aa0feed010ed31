"""
Core modules for the Formal Photo Studio API.

This package contains fundamental utilities used across the application:
- config: Application settings and configuration
- security: Bearer credential parsing
- auth: Identity resolution against the identity provider
- redis: Redis connection management
- exceptions: Custom exception classes
"""

from .config import Settings, get_settings
from .exceptions import (
    AppException,
    AuthenticationError,
    ConfigurationError,
    ContentRejectedError,
    ExternalServiceError,
    GenerationError,
    GenerationTimeoutError,
    PersistenceError,
    QuotaExceededError,
    RateLimitError,
    RequestCancelledError,
    ValidationError,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Exceptions
    "AppException",
    "AuthenticationError",
    "ValidationError",
    "RateLimitError",
    "ContentRejectedError",
    "QuotaExceededError",
    "ExternalServiceError",
    "GenerationError",
    "GenerationTimeoutError",
    "PersistenceError",
    "ConfigurationError",
    "RequestCancelledError",
]
