"""
Integration tests for the generation endpoint.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from sqlalchemy import func, select

from api.dependencies import get_orchestrator
from core.auth import IdentityResolver, VerifiedIdentity, require_identity
from core.exceptions import ContentRejectedError
from database.models import GenerationRecord
from services import (
    GenerationOrchestrator,
    JobPoller,
    JobSubmitter,
    QuotaService,
    RateLimiter,
    ResultRecorder,
)
from services.providers import ExternalJob, JobStatus


@pytest.fixture
def orchestrator(mock_redis, mock_moderator, mock_provider, session_factory):
    return GenerationOrchestrator(
        rate_limiter=RateLimiter(mock_redis, max_requests=10, window_seconds=60),
        moderator=mock_moderator,
        quota=QuotaService(session_factory, free_weekly_cap=2),
        submitter=JobSubmitter(mock_provider),
        poller=JobPoller(mock_provider, interval=0.01, deadline=0.2),
        recorder=ResultRecorder(session_factory),
    )


@pytest.fixture
def authed_app(app, orchestrator):
    """App whose caller is always user-1 and whose pipeline uses test doubles."""

    async def fake_identity():
        return VerifiedIdentity(user_id="user-1")

    app.dependency_overrides[require_identity] = fake_identity
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return app


async def _record_count(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(GenerationRecord))
        return result.scalar_one()


class TestGenerateAuth:
    """Authentication happens before anything else."""

    @pytest.mark.asyncio
    async def test_missing_credential(self, app, async_client, orchestrator, sample_generate_request):
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]

    @pytest.mark.asyncio
    async def test_rejected_credential(
        self, app, async_client, orchestrator, sample_generate_request, auth_headers
    ):
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        resolver = IdentityResolver(
            base_url="https://identity.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(401)),
        )

        with patch("core.auth.get_identity_resolver", return_value=resolver):
            response = await async_client.post(
                "/api/generate", json=sample_generate_request, headers=auth_headers
            )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_client_supplied_user_id_ignored(
        self, authed_app, async_client, sample_generate_request, session_factory
    ):
        payload = {**sample_generate_request, "userId": "someone-else"}

        response = await async_client.post("/api/generate", json=payload)

        assert response.status_code == 200
        async with session_factory() as session:
            record = (await session.execute(select(GenerationRecord))).scalar_one()
        assert record.user_id == "user-1"


class TestGenerateEndpoint:
    """Tests for POST /api/generate."""

    @pytest.mark.asyncio
    async def test_success(self, authed_app, async_client, sample_generate_request):
        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["id"]
        assert data["result"] == "https://cdn.example.com/out.png"
        assert "grey blazer" in data["description"]
        assert "Ladies" in data["description"]
        assert data["quality_report"]["tier"] == "free_weekly"

    @pytest.mark.asyncio
    async def test_missing_image(self, authed_app, async_client):
        response = await async_client.post("/api/generate", json={"type": "portrait"})

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_both_images(self, authed_app, async_client, png_base64):
        response = await async_client.post(
            "/api/generate",
            json={"type": "portrait", "image": png_base64, "imageUrl": "https://x/y.png"},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_json(self, authed_app, async_client):
        response = await async_client.post(
            "/api/generate",
            content=b"{oops",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_undecodable_image(self, authed_app, async_client):
        response = await async_client.post(
            "/api/generate", json={"type": "portrait", "image": "!!!not-base64!!!"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_moderation_rejection_creates_no_record(
        self, authed_app, async_client, sample_generate_request, mock_moderator, session_factory
    ):
        mock_moderator.check_image = AsyncMock(side_effect=ContentRejectedError())

        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 400
        assert response.json()["code"] == "content_rejected"
        assert await _record_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_free_cap_reached(
        self, authed_app, async_client, sample_generate_request, mock_provider
    ):
        for job_id in ("job-a", "job-b"):
            mock_provider.submit_job.return_value = ExternalJob(
                job_id=job_id, status=JobStatus.QUEUED
            )
            mock_provider.get_job.return_value = ExternalJob(
                job_id=job_id,
                status=JobStatus.SUCCEEDED,
                output_reference=f"https://cdn.example.com/{job_id}.png",
            )
            response = await async_client.post("/api/generate", json=sample_generate_request)
            assert response.status_code == 200

        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 403
        assert response.json()["limitReached"] is True

    @pytest.mark.asyncio
    async def test_rate_limited(
        self, authed_app, async_client, sample_generate_request, mock_redis, orchestrator
    ):
        orchestrator.rate_limiter = RateLimiter(mock_redis, max_requests=1, window_seconds=60)
        await async_client.post("/api/generate", json=sample_generate_request)

        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["retryAfter"] == 60

    @pytest.mark.asyncio
    async def test_provider_failure(
        self, authed_app, async_client, sample_generate_request, mock_provider, session_factory
    ):
        mock_provider.get_job.return_value = ExternalJob(
            job_id="job-1", status=JobStatus.FAILED, error="model crashed"
        )

        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 500
        assert response.json()["code"] == "generation_failed"
        assert await _record_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_poll_timeout(
        self, authed_app, async_client, sample_generate_request, mock_provider, session_factory
    ):
        mock_provider.get_job.return_value = ExternalJob(job_id="job-1", status=JobStatus.RUNNING)

        response = await async_client.post("/api/generate", json=sample_generate_request)

        assert response.status_code == 504
        assert await _record_count(session_factory) == 0
