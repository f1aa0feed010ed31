"""
Unit tests for the Replicate provider.
"""

import json

import httpx
import pytest

from core.exceptions import ConfigurationError, GenerationError
from services.providers import JobStatus, ProviderConfig, ReplicateProvider
from services.providers.replicate import parse_output, parse_status

CONFIG = ProviderConfig(
    api_key="r8_test",
    api_base_url="https://api.replicate.test/v1",
    model_version="abc123",
)


def _provider(handler) -> ReplicateProvider:
    return ReplicateProvider(CONFIG, transport=httpx.MockTransport(handler))


class TestParsing:
    """Tests for status and output parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("starting", JobStatus.QUEUED),
            ("processing", JobStatus.RUNNING),
            ("succeeded", JobStatus.SUCCEEDED),
            ("failed", JobStatus.FAILED),
            ("canceled", JobStatus.CANCELED),
            ("Succeeded", JobStatus.SUCCEEDED),
            ("warming", JobStatus.UNKNOWN),
            (None, JobStatus.UNKNOWN),
        ],
    )
    def test_parse_status(self, raw, expected):
        assert parse_status(raw) == expected

    def test_parse_output(self):
        assert parse_output("https://x/1.png") == "https://x/1.png"
        assert parse_output(["https://x/1.png", "https://x/2.png"]) == "https://x/1.png"
        assert parse_output([]) is None
        assert parse_output(None) is None


class TestSubmitJob:
    """Tests for ReplicateProvider.submit_job."""

    @pytest.mark.asyncio
    async def test_creates_prediction(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": "pred-1", "status": "starting"})

        job = await _provider(handler).submit_job(
            prompt="navy suit", image_reference="https://x/in.png", negative_prompt="cartoon"
        )

        assert job.job_id == "pred-1"
        assert job.status == JobStatus.QUEUED
        assert seen["url"] == "https://api.replicate.test/v1/predictions"
        assert seen["auth"] == "Bearer r8_test"
        assert seen["body"] == {
            "version": "abc123",
            "input": {
                "prompt": "navy suit",
                "image": "https://x/in.png",
                "negative_prompt": "cartoon",
            },
        }

    @pytest.mark.asyncio
    async def test_non_success_raises(self):
        provider = _provider(
            lambda request: httpx.Response(422, json={"detail": "Invalid version"})
        )

        with pytest.raises(GenerationError) as exc_info:
            await provider.submit_job(prompt="p", image_reference="https://x/in.png")

        assert exc_info.value.details["error"] == "Invalid version"

    @pytest.mark.asyncio
    async def test_missing_job_id_raises(self):
        provider = _provider(lambda request: httpx.Response(201, json={"status": "starting"}))

        with pytest.raises(GenerationError):
            await provider.submit_job(prompt="p", image_reference="https://x/in.png")

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self):
        provider = ReplicateProvider(ProviderConfig())

        assert provider.is_available is False
        with pytest.raises(ConfigurationError):
            await provider.submit_job(prompt="p", image_reference="https://x/in.png")


class TestGetJob:
    """Tests for ReplicateProvider.get_job."""

    @pytest.mark.asyncio
    async def test_succeeded_prediction_has_output(self):
        provider = _provider(
            lambda request: httpx.Response(
                200,
                json={"id": "pred-1", "status": "succeeded", "output": ["https://x/out.png"]},
            )
        )

        job = await provider.get_job("pred-1")

        assert job.status == JobStatus.SUCCEEDED
        assert job.output_reference == "https://x/out.png"

    @pytest.mark.asyncio
    async def test_output_ignored_until_succeeded(self):
        provider = _provider(
            lambda request: httpx.Response(
                200,
                json={"id": "pred-1", "status": "processing", "output": ["https://x/partial.png"]},
            )
        )

        job = await provider.get_job("pred-1")

        assert job.status == JobStatus.RUNNING
        assert job.output_reference is None

    @pytest.mark.asyncio
    async def test_non_200_is_unknown(self):
        provider = _provider(lambda request: httpx.Response(503, text="busy"))

        job = await provider.get_job("pred-1")

        assert job.status == JobStatus.UNKNOWN
        assert job.job_id == "pred-1"
