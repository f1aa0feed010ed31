"""
GenerationRecord model: the audit log of successful generations.
"""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .profile import Profile


class GenerationRecord(Base, TimestampMixin):
    """
    One row per successful provider job.

    Rows are immutable once written. They double as the evidence for the
    free weekly allowance, so the row insert itself is the free-tier charge.
    ``job_id`` is unique, which makes recording idempotent per job.
    """

    __tablename__ = "generations"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Provider job that produced this record
    job_id: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
    )

    style_kind: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    prompt: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    output_reference: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Which allowance paid for this generation (metered / free_weekly)
    tier: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # Relationships
    profile: Mapped["Profile"] = relationship(
        "Profile",
        back_populates="generations",
    )

    def __repr__(self) -> str:
        return f"<GenerationRecord(id={self.id}, job_id={self.job_id}, tier={self.tier})>"


# Index for trailing-window quota queries
Index("idx_generations_user_tier_created", GenerationRecord.user_id, GenerationRecord.tier, GenerationRecord.created_at)
