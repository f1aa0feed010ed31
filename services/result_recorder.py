"""
Durable recording of successful generations.

The generation record and the balance charge are written in one database
transaction: either both land or neither does. The quota tier is decided
again under the profile row lock, so requests admitted concurrently cannot
overspend the free allowance. Recording is idempotent per
provider job id, so a retried request never charges twice.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.auth import VerifiedIdentity
from core.exceptions import PersistenceError, QuotaExceededError
from database import transaction
from database.models import GenerationRecord
from database.repositories import GenerationRepository, ProfileRepository

from .prompt_builder import Directive
from .providers import ExternalJob
from .quota_service import QuotaDecision, QuotaService, QuotaTier

logger = logging.getLogger(__name__)


@dataclass
class RecordOutcome:
    """Result of recording a job."""

    record: GenerationRecord
    duplicate: bool
    remaining_credits: int
    decision: QuotaDecision


class ResultRecorder:
    """Writes the generation record and applies the charge atomically."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        quota: QuotaService | None = None,
    ):
        self._session_factory = session_factory
        self._quota = quota or QuotaService(session_factory)

    async def record(
        self,
        identity: VerifiedIdentity,
        decision: QuotaDecision,
        job: ExternalJob,
        directive: Directive,
        style_kind: str,
    ) -> RecordOutcome:
        """
        Record a succeeded job and charge the user.

        Steps, in one transaction:
        1. Lock the profile row so concurrent charges serialize
        2. Return the existing record if this job was already recorded
        3. Decide the tier again; credits spent by another request fall back
           to the free allowance
        4. Insert the record (a unique violation means a concurrent writer won)
        5. Metered tier only: conditionally debit one credit

        ``decision`` is the admission decision, reported back unchanged for
        duplicates.

        Raises:
            QuotaExceededError: If the allowance ran out after admission
            PersistenceError: If the write fails or the debit matches no row
        """
        user_id = identity.user_id
        try:
            async with transaction(self._session_factory) as session:
                profiles = ProfileRepository(session)
                generations = GenerationRepository(session)

                profile = await profiles.lock(user_id)
                if profile is None:
                    profile = await profiles.get_or_create(user_id, email=identity.email)
                balance = profile.credits

                existing = await generations.get_by_job_id(job.job_id)
                if existing is not None:
                    logger.info(f"Job {job.job_id} already recorded, not charging again")
                    return RecordOutcome(
                        record=existing,
                        duplicate=True,
                        remaining_credits=balance,
                        decision=decision,
                    )

                try:
                    settled = await self._quota.decide(session, user_id, balance)
                except QuotaExceededError:
                    logger.warning(
                        f"Allowance used up by concurrent requests, discarding job: "
                        f"user={user_id}, job={job.job_id}, output={job.output_reference}"
                    )
                    raise
                if settled.tier != decision.tier:
                    logger.warning(
                        f"Tier changed since admission: user={user_id}, job={job.job_id}, "
                        f"{decision.tier} -> {settled.tier}"
                    )

                try:
                    async with session.begin_nested():
                        record = await generations.create(
                            user_id=user_id,
                            job_id=job.job_id,
                            style_kind=style_kind,
                            prompt=directive.prompt,
                            output_reference=job.output_reference,
                            tier=settled.tier,
                        )
                except IntegrityError:
                    existing = await generations.get_by_job_id(job.job_id)
                    if existing is None:
                        raise
                    return RecordOutcome(
                        record=existing,
                        duplicate=True,
                        remaining_credits=balance,
                        decision=decision,
                    )

                remaining = balance
                if settled.tier == QuotaTier.METERED:
                    if not await profiles.try_debit_credit(user_id):
                        logger.critical(
                            f"Credit debit failed after provider success: user={user_id}, "
                            f"job={job.job_id}, output={job.output_reference}"
                        )
                        raise PersistenceError(
                            message="Insufficient credits to record generation",
                            details={"job_id": job.job_id},
                        )
                    remaining = await profiles.get_credits(user_id)

        except SQLAlchemyError as e:
            logger.critical(
                f"Failed to record generation: user={user_id}, job={job.job_id}, "
                f"output={job.output_reference}, error={e}"
            )
            raise PersistenceError(details={"job_id": job.job_id}) from e

        logger.info(f"Recorded job {job.job_id} for user {user_id} ({settled.tier})")
        return RecordOutcome(
            record=record,
            duplicate=False,
            remaining_credits=remaining,
            decision=settled,
        )
