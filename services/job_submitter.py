"""
Job submission to the generation provider.
"""

import logging
from dataclasses import dataclass

from .prompt_builder import Directive, build_directive
from .providers import ExternalJob, JobProvider

logger = logging.getLogger(__name__)


@dataclass
class SubmittedJob:
    """A started job together with the directive it was started with."""

    job: ExternalJob
    directive: Directive


class JobSubmitter:
    """Builds the directive for a request and starts one provider job."""

    def __init__(self, provider: JobProvider):
        self.provider = provider

    async def submit(
        self,
        style_kind: str,
        image_reference: str,
        constraints: dict[str, str] | None = None,
        instructions: str | None = None,
        gender_mode: str | None = None,
    ) -> SubmittedJob:
        """
        Start a generation job. Submissions are never retried.

        Raises:
            ConfigurationError: If the provider has no credentials
            GenerationError: If the provider refuses the job
        """
        directive = build_directive(
            style_kind,
            constraints=constraints,
            instructions=instructions,
            gender_mode=gender_mode,
        )
        logger.info(f"Submitting [{style_kind}] job to {self.provider.name}")

        job = await self.provider.submit_job(
            prompt=directive.prompt,
            image_reference=image_reference,
            negative_prompt=directive.negative_prompt,
        )
        return SubmittedJob(job=job, directive=directive)
