"""
Generation request orchestration.

Runs the stages of a generation request strictly in order:

    rate limit -> image input -> moderation -> quota -> submit -> poll -> record

Identity is resolved before the orchestrator is entered. Each stage either
passes or raises exactly one AppException subclass; nothing after the
quota check runs unless every earlier stage passed.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from core.auth import VerifiedIdentity
from core.exceptions import ValidationError

from .content_moderator import ContentModerator
from .image_input import ImageInput, decode_inline_image, fetch_remote_image
from .job_poller import CancelCheck, JobPoller
from .job_submitter import JobSubmitter
from .quota_service import QuotaService, QuotaTier
from .rate_limiter import RateLimiter
from .result_recorder import ResultRecorder

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Your professional photo is ready."


@dataclass
class GenerationRequest:
    """One generation request, as accepted from the client."""

    style_kind: str
    image_data: str | None = None  # base64, optionally a data: URL
    image_url: str | None = None
    instructions: str | None = None
    constraints: dict[str, str] = field(default_factory=dict)
    gender_mode: str | None = None

    def __post_init__(self):
        if bool(self.image_data) == bool(self.image_url):
            raise ValidationError(message="Provide exactly one of image or imageUrl")


class GenerationOrchestrator:
    """Sequences the generation stages for one request."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        moderator: ContentModerator,
        quota: QuotaService,
        submitter: JobSubmitter,
        poller: JobPoller,
        recorder: ResultRecorder,
        max_image_bytes: int = 10 * 1024 * 1024,
        image_download_timeout: float = 20.0,
        image_url_allowed_hosts: Sequence[str] = (),
    ):
        self.rate_limiter = rate_limiter
        self.moderator = moderator
        self.quota = quota
        self.submitter = submitter
        self.poller = poller
        self.recorder = recorder
        self.max_image_bytes = max_image_bytes
        self.image_download_timeout = image_download_timeout
        self.image_url_allowed_hosts = tuple(image_url_allowed_hosts)

    async def _load_image(self, request: GenerationRequest) -> ImageInput:
        if request.image_data:
            return decode_inline_image(request.image_data, self.max_image_bytes)
        return await fetch_remote_image(
            request.image_url,
            self.max_image_bytes,
            allowed_hosts=self.image_url_allowed_hosts,
            timeout=self.image_download_timeout,
        )

    async def run(
        self,
        identity: VerifiedIdentity,
        request: GenerationRequest,
        is_cancelled: CancelCheck | None = None,
    ) -> dict[str, Any]:
        """
        Execute a generation request end to end.

        Returns:
            The success response body

        Raises:
            AppException: The first stage failure, unchanged
        """
        await self.rate_limiter.check(identity)

        image = await self._load_image(request)
        await self.moderator.check_image(image.data, image.mime_type)

        decision = await self.quota.check(identity)

        submitted = await self.submitter.submit(
            request.style_kind,
            image.reference,
            constraints=request.constraints,
            instructions=request.instructions,
            gender_mode=request.gender_mode,
        )
        polled = await self.poller.poll(submitted.job, is_cancelled=is_cancelled)

        outcome = await self.recorder.record(
            identity,
            decision,
            polled.job,
            submitted.directive,
            request.style_kind,
        )

        settled = outcome.decision
        if settled.tier == QuotaTier.FREE_WEEKLY and not outcome.duplicate:
            free_remaining = max(0, settled.free_weekly_remaining - 1)
        else:
            free_remaining = settled.free_weekly_remaining

        return {
            "success": True,
            "id": str(outcome.record.id),
            "result": outcome.record.output_reference,
            "description": outcome.record.prompt,
            "message": SUCCESS_MESSAGE,
            "quality_report": {
                "style_kind": request.style_kind,
                "tier": str(settled.tier),
                "provider": self.submitter.provider.name,
                "provider_status": str(polled.job.status),
                "job_id": polled.job.job_id,
                "polls": polled.polls,
                "elapsed_seconds": round(polled.elapsed, 2),
                "duplicate": outcome.duplicate,
                "remaining_credits": outcome.remaining_credits,
                "free_weekly_remaining": free_remaining,
            },
        }
