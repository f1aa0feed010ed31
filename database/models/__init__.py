"""
SQLAlchemy models for the Formal Photo Studio API.
"""

from .base import Base, TimestampMixin, utcnow
from .generation import GenerationRecord
from .profile import Profile

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "utcnow",
    # Models
    "Profile",
    "GenerationRecord",
]
