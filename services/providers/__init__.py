"""
Generation provider integrations.
"""

from .base import ExternalJob, HTTPProviderMixin, JobProvider, JobStatus, ProviderConfig
from .replicate import ReplicateProvider

__all__ = [
    "ExternalJob",
    "HTTPProviderMixin",
    "JobProvider",
    "JobStatus",
    "ProviderConfig",
    "ReplicateProvider",
]
