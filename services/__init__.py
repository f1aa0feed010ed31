"""
Services module for the Formal Photo Studio API.
"""

from .content_moderator import ContentModerator, get_content_moderator
from .image_input import ImageInput, decode_inline_image, fetch_remote_image, sniff_mime_type
from .job_poller import JobPoller, PollResult
from .job_submitter import JobSubmitter, SubmittedJob
from .orchestrator import GenerationOrchestrator, GenerationRequest
from .prompt_builder import Directive, build_directive
from .providers import (
    ExternalJob,
    JobProvider,
    JobStatus,
    ProviderConfig,
    ReplicateProvider,
)
from .quota_service import QuotaDecision, QuotaService, QuotaTier
from .rate_limiter import RateLimiter
from .result_recorder import RecordOutcome, ResultRecorder

__all__ = [
    # Stages
    "RateLimiter",
    "ContentModerator",
    "get_content_moderator",
    "QuotaService",
    "QuotaDecision",
    "QuotaTier",
    "JobSubmitter",
    "SubmittedJob",
    "JobPoller",
    "PollResult",
    "ResultRecorder",
    "RecordOutcome",
    # Orchestration
    "GenerationOrchestrator",
    "GenerationRequest",
    # Directives
    "Directive",
    "build_directive",
    # Image input
    "ImageInput",
    "decode_inline_image",
    "fetch_remote_image",
    "sniff_mime_type",
    # Providers
    "ExternalJob",
    "JobProvider",
    "JobStatus",
    "ProviderConfig",
    "ReplicateProvider",
]
