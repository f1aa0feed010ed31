"""
Base types shared by generation providers.

Providers run generation as asynchronous jobs: submission returns a job id
and the job is observed by polling. This module defines the provider-neutral
job view and the httpx plumbing reused by concrete providers.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)


# ============ Enums ============


class JobStatus(StrEnum):
    """Lifecycle of an external generation job."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        """Succeeded, failed and canceled jobs never transition again."""
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED)


# ============ Data Classes ============


@dataclass
class ExternalJob:
    """Provider-neutral snapshot of a job, as last observed."""

    job_id: str
    status: JobStatus
    output_reference: str | None = None  # present iff status is SUCCEEDED
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderConfig:
    """Configuration for a generation provider."""

    api_key: str | None = None
    api_base_url: str | None = None
    model_version: str | None = None
    timeout: float = 30.0
    extra: dict = field(default_factory=dict)  # Provider-specific config


# ============ Protocols ============


@runtime_checkable
class JobProvider(Protocol):
    """Protocol for providers that execute generation as polled jobs."""

    @property
    def name(self) -> str:
        """Unique identifier for this provider."""
        ...

    @property
    def is_available(self) -> bool:
        """Whether credentials and model are configured."""
        ...

    async def submit_job(
        self,
        prompt: str,
        image_reference: str,
        negative_prompt: str | None = None,
    ) -> ExternalJob:
        """Start a job and return its initial snapshot."""
        ...

    async def get_job(self, job_id: str) -> ExternalJob:
        """Fetch the current snapshot of a job."""
        ...


# ============ Shared Implementation ============


class HTTPProviderMixin:
    """
    Mixin for providers that use httpx for HTTP requests.

    Provides common implementations for:
    - HTTP client management
    - Error extraction from responses
    """

    _client: httpx.AsyncClient | None = None
    _transport: httpx.AsyncBaseTransport | None = None
    _base_url: str
    _api_key: str | None
    _timeout: float = 30.0

    def _get_default_headers(self) -> dict:
        """
        Get default headers for requests. Override in subclasses for custom auth.

        Default implementation uses Bearer token authentication.
        """
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._get_default_headers(),
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _extract_error_from_response(self, response: httpx.Response) -> str:
        """
        Extract error message from response. Override for provider-specific formats.

        Looks for {"error": {"message": "..."}}, {"error": "..."} and
        {"detail": "..."} shapes.
        """
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"

        if not isinstance(data, dict):
            return f"HTTP {response.status_code}"
        if isinstance(data.get("error"), dict):
            return data["error"].get("message", f"HTTP {response.status_code}")
        for key in ("error", "detail", "message"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
        return f"HTTP {response.status_code}"
