"""
Tiered usage quota checks.

Users either spend metered credits (profiles.credits) or fall back to a free
weekly allowance counted from their generation records. The decision is made
twice: once at admission, before any provider work, and again by the result
recorder while it holds the profile row lock. Only the second decision is
binding.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.auth import VerifiedIdentity
from core.exceptions import QuotaExceededError
from database import transaction
from database.repositories import GenerationRepository, ProfileRepository

logger = logging.getLogger(__name__)


class QuotaTier(StrEnum):
    """Which allowance pays for a generation."""

    METERED = "metered"
    FREE_WEEKLY = "free_weekly"


@dataclass(frozen=True)
class QuotaDecision:
    """Quota state read at decision time."""

    tier: QuotaTier
    metered_balance: int
    free_weekly_used: int
    free_weekly_cap: int

    @property
    def free_weekly_remaining(self) -> int:
        return max(0, self.free_weekly_cap - self.free_weekly_used)


class QuotaService:
    """Decides whether a verified user may start another generation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        free_weekly_cap: int = 2,
        free_window_days: int = 7,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self._session_factory = session_factory
        self.free_weekly_cap = free_weekly_cap
        self.free_window = timedelta(days=free_window_days)
        self._clock = clock

    async def decide(
        self,
        session: AsyncSession,
        user_id: str,
        balance: int,
    ) -> QuotaDecision:
        """
        Pick the tier for a user whose balance was read in ``session``.

        1. Any credits left -> metered tier (1 credit deducted on success).
        2. Otherwise count free-tier successes in the trailing window and
           deny once the cap is reached.

        Raises:
            QuotaExceededError: If no credits remain and the free allowance
                is used up
        """
        if balance > 0:
            return QuotaDecision(
                tier=QuotaTier.METERED,
                metered_balance=balance,
                free_weekly_used=0,
                free_weekly_cap=self.free_weekly_cap,
            )

        since = self._clock() - self.free_window
        used = await GenerationRepository(session).count_since(
            user_id, since, tier=QuotaTier.FREE_WEEKLY
        )

        if used >= self.free_weekly_cap:
            logger.info(
                f"Free weekly limit reached: user={user_id}, "
                f"used={used}/{self.free_weekly_cap}"
            )
            raise QuotaExceededError(
                details={"used": used, "limit": self.free_weekly_cap},
            )

        return QuotaDecision(
            tier=QuotaTier.FREE_WEEKLY,
            metered_balance=0,
            free_weekly_used=used,
            free_weekly_cap=self.free_weekly_cap,
        )

    async def check(self, identity: VerifiedIdentity) -> QuotaDecision:
        """Admit or deny the request before any provider work starts."""
        async with transaction(self._session_factory) as session:
            profile = await ProfileRepository(session).get_or_create(
                identity.user_id, email=identity.email
            )
            return await self.decide(session, identity.user_id, profile.credits)
