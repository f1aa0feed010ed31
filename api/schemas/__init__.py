"""
Pydantic schemas for API request/response models.
"""

from .common import (
    ErrorResponse,
    HealthStatus,
    HealthCheckResponse,
    DetailedHealthCheckResponse,
    ComponentHealth,
)

from .generate import (
    GenerateRequest,
    GenerateResponse,
    QualityReport,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthStatus",
    "HealthCheckResponse",
    "DetailedHealthCheckResponse",
    "ComponentHealth",
    # Generate
    "GenerateRequest",
    "GenerateResponse",
    "QualityReport",
]
