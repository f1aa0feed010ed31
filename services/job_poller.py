"""
Deadline-bounded polling of provider jobs.

The only retry loop in the generation flow: a job is re-read at a fixed
interval until it reaches a terminal status or the cumulative deadline
expires.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from core.exceptions import GenerationError, GenerationTimeoutError, RequestCancelledError

from .providers import ExternalJob, JobProvider, JobStatus

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], Awaitable[bool]]


@dataclass
class PollResult:
    """Final snapshot of a succeeded job plus polling statistics."""

    job: ExternalJob
    polls: int
    elapsed: float


class JobPoller:
    """Waits for a submitted job to finish."""

    def __init__(
        self,
        provider: JobProvider,
        interval: float = 1.0,
        deadline: float = 60.0,
    ):
        self.provider = provider
        self.interval = interval
        self.deadline = deadline

    async def _fetch(self, job_id: str) -> ExternalJob:
        """Read the job once; transient failures are reported as UNKNOWN."""
        try:
            return await self.provider.get_job(job_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error polling job {job_id}: {e}")
            return ExternalJob(job_id=job_id, status=JobStatus.UNKNOWN, error=str(e))

    async def poll(
        self,
        job: ExternalJob,
        is_cancelled: CancelCheck | None = None,
    ) -> PollResult:
        """
        Poll ``job`` until it succeeds.

        Starts from the status reported at submission, so an already
        terminal job costs no extra calls.

        Args:
            job: Snapshot returned by the submitter
            is_cancelled: Checked before every poll; True stops polling

        Raises:
            GenerationError: If the job failed or was canceled
            GenerationTimeoutError: If the deadline passes first
            RequestCancelledError: If ``is_cancelled`` reported True
        """
        start = time.monotonic()
        polls = 0
        current = job

        try:
            async with asyncio.timeout(self.deadline):
                while not current.status.is_terminal:
                    await asyncio.sleep(self.interval)
                    if is_cancelled is not None and await is_cancelled():
                        logger.info(f"Client went away, stop polling job {job.job_id}")
                        raise RequestCancelledError()
                    current = await self._fetch(job.job_id)
                    polls += 1
        except TimeoutError:
            logger.warning(f"Job {job.job_id} still {current.status} after {self.deadline}s")
            raise GenerationTimeoutError(
                details={"job_id": job.job_id, "polls": polls},
            ) from None

        elapsed = time.monotonic() - start

        if current.status != JobStatus.SUCCEEDED:
            logger.error(f"Job {job.job_id} ended {current.status}: {current.error}")
            raise GenerationError(
                message=f"Generation {current.status}",
                details={"job_id": job.job_id, "error": current.error},
            )
        if not current.output_reference:
            logger.error(f"Job {job.job_id} succeeded without output")
            raise GenerationError(
                message="Generation returned no output",
                details={"job_id": job.job_id},
            )

        logger.info(f"Job {job.job_id} succeeded after {polls} polls ({elapsed:.1f}s)")
        return PollResult(job=current, polls=polls, elapsed=elapsed)
