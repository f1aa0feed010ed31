"""
Profile repository for credit balance reads and conditional debits.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Profile


class ProfileRepository:
    """Repository for Profile model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Profile | None:
        """Get profile by identity-provider user id."""
        result = await self.session.execute(select(Profile).where(Profile.id == user_id))
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: str, email: str | None = None) -> Profile:
        """
        Get the user's profile, creating an empty one on first sight.

        Concurrent first requests race on the primary key; the loser of the
        race reads the winner's row.
        """
        profile = await self.get_by_id(user_id)
        if profile:
            return profile

        try:
            async with self.session.begin_nested():
                profile = Profile(id=user_id, email=email, credits=0)
                self.session.add(profile)
        except IntegrityError:
            profile = await self.get_by_id(user_id)
            if profile is None:
                raise
        return profile

    async def lock(self, user_id: str) -> Profile | None:
        """Select the profile row FOR UPDATE (no-op lock on SQLite)."""
        result = await self.session.execute(
            select(Profile)
            .where(Profile.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_credits(self, user_id: str) -> int:
        """Read the current balance straight from the database."""
        result = await self.session.execute(select(Profile.credits).where(Profile.id == user_id))
        return result.scalar_one_or_none() or 0

    async def try_debit_credit(self, user_id: str, amount: int = 1) -> bool:
        """
        Deduct credits only if the balance covers it.

        A single conditional UPDATE, never read-then-write, so two concurrent
        debits cannot both spend the same credit.

        Returns:
            True if exactly one row was debited
        """
        result = await self.session.execute(
            update(Profile)
            .where(Profile.id == user_id, Profile.credits >= amount)
            .values(credits=Profile.credits - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
