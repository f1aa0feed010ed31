"""
Generation repository for the audit log and trailing-window usage counts.
"""

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import GenerationRecord


class GenerationRepository:
    """Repository for GenerationRecord model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: str,
        job_id: str,
        style_kind: str,
        prompt: str,
        output_reference: str,
        tier: str,
        created_at: datetime | None = None,
    ) -> GenerationRecord:
        """Insert a generation record and flush it so constraints fire now."""
        record = GenerationRecord(
            user_id=user_id,
            job_id=job_id,
            style_kind=style_kind,
            prompt=prompt,
            output_reference=output_reference,
            tier=tier,
        )
        if created_at is not None:
            record.created_at = created_at
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_by_job_id(self, job_id: str) -> GenerationRecord | None:
        """Get the record written for a provider job, if any."""
        result = await self.session.execute(
            select(GenerationRecord).where(GenerationRecord.job_id == job_id)
        )
        return result.scalar_one_or_none()

    async def count_since(
        self,
        user_id: str,
        since: datetime,
        tier: str | None = None,
    ) -> int:
        """Count the user's records created at or after ``since``."""
        conditions = [
            GenerationRecord.user_id == user_id,
            GenerationRecord.created_at >= since,
        ]
        if tier is not None:
            conditions.append(GenerationRecord.tier == tier)

        query = select(func.count()).select_from(GenerationRecord).where(and_(*conditions))
        result = await self.session.execute(query)
        return result.scalar_one()
