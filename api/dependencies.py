"""
FastAPI dependency injection for the generation stages.
"""

import logging

from fastapi import Depends
from redis.asyncio import Redis

from core.config import Settings, get_settings
from core.exceptions import ConfigurationError
from core.redis import get_redis
from database import get_session_factory, is_database_available
from services import (
    ContentModerator,
    GenerationOrchestrator,
    JobPoller,
    JobSubmitter,
    ProviderConfig,
    QuotaService,
    RateLimiter,
    ReplicateProvider,
    ResultRecorder,
    get_content_moderator,
)

logger = logging.getLogger(__name__)

_provider: ReplicateProvider | None = None


def get_generation_provider() -> ReplicateProvider:
    """Get or create the generation provider singleton."""
    global _provider
    if _provider is None:
        settings = get_settings()
        if not settings.is_generation_configured:
            logger.warning("Generation provider credentials are not configured")
        _provider = ReplicateProvider(
            ProviderConfig(
                api_key=settings.generation_api_token,
                api_base_url=settings.generation_api_url,
                model_version=settings.generation_model_version,
                timeout=settings.generation_timeout,
            )
        )
    return _provider


async def close_generation_provider() -> None:
    """Release the provider's HTTP client (application shutdown)."""
    global _provider
    if _provider is not None:
        await _provider.close()
        _provider = None


async def get_rate_limiter(
    redis: Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> RateLimiter:
    """Get RateLimiter dependency."""
    return RateLimiter(
        redis,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )


def get_orchestrator(
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    moderator: ContentModerator = Depends(get_content_moderator),
    provider: ReplicateProvider = Depends(get_generation_provider),
    settings: Settings = Depends(get_settings),
) -> GenerationOrchestrator:
    """Assemble the generation pipeline for one request."""
    if not is_database_available():
        raise ConfigurationError(message="Database is not configured")
    session_factory = get_session_factory()
    quota = QuotaService(
        session_factory,
        free_weekly_cap=settings.free_weekly_cap,
        free_window_days=settings.free_window_days,
    )
    return GenerationOrchestrator(
        rate_limiter=rate_limiter,
        moderator=moderator,
        quota=quota,
        submitter=JobSubmitter(provider),
        poller=JobPoller(
            provider,
            interval=settings.poll_interval_seconds,
            deadline=settings.poll_deadline_seconds,
        ),
        recorder=ResultRecorder(session_factory, quota=quota),
        max_image_bytes=settings.max_image_bytes,
        image_download_timeout=settings.image_download_timeout,
        image_url_allowed_hosts=settings.image_url_hosts,
    )
