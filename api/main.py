"""
FastAPI application entry point for the Formal Photo Studio API.

Startup connects the two shared stores (Redis for rate limit windows,
PostgreSQL for balances and generation records) and refuses to start
without them. Provider clients are created lazily and closed on shutdown.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import close_generation_provider
from api.middleware import setup_exception_handlers
from api.routers import generate_router, health_router
from core.auth import close_identity_resolver
from core.config import Settings, get_settings
from core.exceptions import ConfigurationError
from core.redis import close_redis, init_redis
from database import close_database, init_database

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
    )


def check_pipeline_settings(settings: Settings) -> None:
    """Reject or warn about configuration that makes every generation fail."""
    if settings.poll_interval_seconds >= settings.poll_deadline_seconds:
        raise ConfigurationError(
            message="Poll interval must be shorter than the poll deadline",
            details={
                "poll_interval_seconds": settings.poll_interval_seconds,
                "poll_deadline_seconds": settings.poll_deadline_seconds,
            },
        )

    logger.info(
        f"Rate limit {settings.rate_limit_requests}/{settings.rate_limit_window}s, "
        f"free tier {settings.free_weekly_cap} per {settings.free_window_days} days, "
        f"poll every {settings.poll_interval_seconds}s for {settings.poll_deadline_seconds}s"
    )

    if not settings.is_identity_configured:
        logger.warning("Identity provider not configured, all requests will be rejected")
    if not settings.is_generation_configured:
        logger.warning("Generation provider not configured, submissions will fail")
    if not settings.moderation_enabled:
        logger.warning("Content moderation is disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # ============ Startup ============
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")
    check_pipeline_settings(settings)

    await init_redis()

    if settings.is_database_configured:
        await init_database()
        logger.info("Database initialized")
    else:
        logger.warning("Database not configured, generation requests will fail")

    yield

    # ============ Shutdown ============
    logger.info("Shutting down")
    await close_identity_resolver()
    await close_generation_provider()
    await close_redis()
    await close_database()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application: CORS, error envelope, health and generate routes."""
    settings = settings or get_settings()
    docs_enabled = not settings.is_production

    app = FastAPI(
        title=settings.app_name,
        description="Professional headshot generation API",
        version=settings.app_version,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Browser clients call /api/generate cross-origin with a bearer header
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    setup_exception_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(generate_router, prefix="/api")

    @app.get("/", tags=["root"])
    async def root():
        """Service name, version and where to look next."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if docs_enabled else None,
            "health": "/api/health",
            "generate": "/api/generate",
        }

    return app


configure_logging(get_settings())
app = create_app()


def run():
    """Run the application with uvicorn (for development)."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
