"""
Artifact Reaper Core Module.

Provides foundational types and the exception hierarchy.
"""

__all__ = [
    "Artifact",
    "CommitRef",
    "Tag",
    "WorkflowRun",
    # Exceptions
    "ArtifactReaperError",
    "ConfigurationError",
    "HostError",
    "HostOperationError",
    "TransientHostError",
    "RateLimitError",
    "AbuseLimitError",
    "BatchFailure",
]

from artifact_reaper.core.exceptions import (
    AbuseLimitError,
    ArtifactReaperError,
    BatchFailure,
    ConfigurationError,
    HostError,
    HostOperationError,
    RateLimitError,
    TransientHostError,
)
from artifact_reaper.core.models import Artifact, CommitRef, Tag, WorkflowRun
