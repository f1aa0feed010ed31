"""
Repository layer for database access.

Provides async CRUD operations for all models.
"""

from .generation_repo import GenerationRepository
from .profile_repo import ProfileRepository

__all__ = [
    "ProfileRepository",
    "GenerationRepository",
]
