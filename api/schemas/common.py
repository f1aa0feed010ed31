"""
Common Pydantic schemas used across the API.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )
    retryAfter: Optional[int] = Field(
        default=None,
        description="Seconds to wait before retrying (rate limited responses only)"
    )
    limitReached: Optional[bool] = Field(
        default=None,
        description="Set when the free weekly allowance is used up"
    )


class HealthStatus(str, Enum):
    """Health check status enum."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health of one dependency (redis, database or a provider)."""

    status: HealthStatus
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class HealthCheckResponse(BaseModel):
    """Basic health check response."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DetailedHealthCheckResponse(BaseModel):
    """Health of every dependency a generation request touches."""

    status: HealthStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str
    environment: str
    uptime_seconds: float
    components: Dict[str, ComponentHealth] = Field(
        default_factory=dict,
        description="Health status of each component"
    )
