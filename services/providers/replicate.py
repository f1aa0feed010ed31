"""
Replicate provider implementation.

Runs an image-to-image model as a Replicate prediction and exposes it as an
ExternalJob. Predictions move through starting -> processing -> one of
succeeded / failed / canceled.
"""

import logging

import httpx

from core.exceptions import ConfigurationError, GenerationError

from .base import ExternalJob, HTTPProviderMixin, JobStatus, ProviderConfig

logger = logging.getLogger(__name__)


# Replicate prediction status -> JobStatus
STATUS_MAP = {
    "starting": JobStatus.QUEUED,
    "queued": JobStatus.QUEUED,
    "processing": JobStatus.RUNNING,
    "succeeded": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.CANCELED,
    "cancelled": JobStatus.CANCELED,
}


def parse_status(raw: str | None) -> JobStatus:
    """Map a provider status string onto JobStatus (UNKNOWN if unrecognised)."""
    if not raw:
        return JobStatus.UNKNOWN
    return STATUS_MAP.get(raw.lower(), JobStatus.UNKNOWN)


def parse_output(output) -> str | None:
    """Reduce a prediction's ``output`` (URL or list of URLs) to one reference."""
    if isinstance(output, str):
        return output or None
    if isinstance(output, list):
        for item in output:
            if isinstance(item, str) and item:
                return item
    return None


class ReplicateProvider(HTTPProviderMixin):
    """
    Replicate predictions API client.

    Only two calls are made: create a prediction and read it back. Neither
    is retried here; the poller owns the only retry loop in the system.
    """

    def __init__(
        self,
        config: ProviderConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config or ProviderConfig()
        self._api_key = self._config.api_key
        self._base_url = (self._config.api_base_url or "https://api.replicate.com/v1").rstrip("/")
        self._model_version = self._config.model_version
        self._timeout = self._config.timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "replicate"

    @property
    def is_available(self) -> bool:
        return bool(self._api_key and self._model_version)

    def _to_job(self, data: dict) -> ExternalJob:
        status = parse_status(data.get("status"))
        output = parse_output(data.get("output")) if status == JobStatus.SUCCEEDED else None
        return ExternalJob(
            job_id=str(data.get("id", "")),
            status=status,
            output_reference=output,
            error=data.get("error") or None,
            metadata={"provider_status": data.get("status")},
        )

    async def submit_job(
        self,
        prompt: str,
        image_reference: str,
        negative_prompt: str | None = None,
    ) -> ExternalJob:
        """
        Create a prediction.

        Raises:
            ConfigurationError: If token or model version is missing
            GenerationError: On a non-success response or missing job id
        """
        if not self.is_available:
            raise ConfigurationError(message="Generation provider is not configured")

        payload_input = {"prompt": prompt, "image": image_reference}
        if negative_prompt:
            payload_input["negative_prompt"] = negative_prompt

        client = await self._get_client()
        try:
            response = await client.post(
                "/predictions",
                json={"version": self._model_version, "input": payload_input},
            )
        except httpx.HTTPError as e:
            raise GenerationError(
                message="Generation provider unreachable",
                details={"error": str(e)},
            )

        if response.status_code not in (200, 201):
            error_msg = self._extract_error_from_response(response)
            raise GenerationError(
                message="Generation provider rejected the request",
                details={"status_code": response.status_code, "error": error_msg},
            )

        job = self._to_job(response.json())
        if not job.job_id:
            raise GenerationError(message="Generation provider returned no job id")

        logger.info(f"[Replicate] Submitted prediction {job.job_id} ({job.status})")
        return job

    async def get_job(self, job_id: str) -> ExternalJob:
        """
        Read a prediction back.

        A non-200 answer is reported as UNKNOWN so the poller keeps going;
        transport errors propagate to the caller.
        """
        client = await self._get_client()
        response = await client.get(f"/predictions/{job_id}")

        if response.status_code != 200:
            return ExternalJob(
                job_id=job_id,
                status=JobStatus.UNKNOWN,
                error=self._extract_error_from_response(response),
            )

        job = self._to_job(response.json())
        job.job_id = job.job_id or job_id
        return job
