"""
Profile model holding the user's metered credit balance.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .generation import GenerationRecord


class Profile(Base, TimestampMixin):
    """
    One row per identity-provider user.

    ``credits`` is the metered balance. It is only ever decremented by the
    result recorder, one credit per successful job, and can never go
    negative.
    """

    __tablename__ = "profiles"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_profiles_credits_non_negative"),)

    # Identity-provider user id
    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    credits: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Relationships
    generations: Mapped[list["GenerationRecord"]] = relationship(
        "GenerationRecord",
        back_populates="profile",
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, credits={self.credits})>"
