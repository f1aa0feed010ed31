"""
Health check endpoints.

- GET /api/health           - liveness, no dependencies touched
- GET /api/health/detailed  - rate limit store, database and provider setup
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.schemas.common import (
    HealthStatus,
    HealthCheckResponse,
    DetailedHealthCheckResponse,
    ComponentHealth,
)
from core.config import get_settings, Settings
from core.redis import check_redis
from database import check_database

router = APIRouter(prefix="/health", tags=["health"])

# Rate limit windows are stamped with the API clock, not the Redis clock
MAX_CLOCK_SKEW_MS = 1000.0

_start_time = time.time()


def _worst(current: HealthStatus, other: HealthStatus) -> HealthStatus:
    order = [HealthStatus.HEALTHY, HealthStatus.DEGRADED, HealthStatus.UNHEALTHY]
    return max(current, other, key=order.index)


def _redis_component(result: dict) -> ComponentHealth:
    if result["status"] != "healthy":
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            error=result.get("error", result["status"]),
        )

    skew = result.get("clock_skew_ms", 0.0)
    if abs(skew) > MAX_CLOCK_SKEW_MS:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            latency_ms=result.get("latency_ms"),
            error=f"Clock skew of {skew} ms distorts rate limit windows",
            details={"clock_skew_ms": skew},
        )

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        latency_ms=result.get("latency_ms"),
        details={"clock_skew_ms": skew},
    )


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Basic health check",
    description="Liveness check for load balancers.",
)
async def health_check() -> HealthCheckResponse:
    return HealthCheckResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/detailed",
    response_model=DetailedHealthCheckResponse,
    summary="Detailed health check",
    description="Health of the rate limit store, the database and provider configuration.",
)
async def detailed_health_check(
    settings: Settings = Depends(get_settings),
) -> DetailedHealthCheckResponse:
    """
    Detailed health check with component status.

    Redis and the database are required for every generation, so either
    being down makes the service unhealthy. Clock drift against Redis and
    missing provider configuration only degrade it.
    """
    components = {"redis": _redis_component(await check_redis())}

    db_health = await check_database()
    components["database"] = ComponentHealth(
        status=HealthStatus.HEALTHY if db_health["status"] == "healthy" else HealthStatus.UNHEALTHY,
        error=db_health.get("error", None if db_health["status"] == "healthy" else db_health["status"]),
    )

    providers = {
        "identity": settings.is_identity_configured,
        "generation": settings.is_generation_configured,
        "moderation": bool(settings.google_api_key) or not settings.moderation_enabled,
    }
    for name, configured in providers.items():
        if configured:
            components[name] = ComponentHealth(status=HealthStatus.HEALTHY)
        else:
            components[name] = ComponentHealth(
                status=HealthStatus.DEGRADED,
                error=f"{name} provider not configured",
            )

    overall_status = HealthStatus.HEALTHY
    for component in components.values():
        overall_status = _worst(overall_status, component.status)

    return DetailedHealthCheckResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=round(time.time() - _start_time, 2),
        components=components,
    )
