"""
Artifact Reaper Retention Module.

The retention pipeline: tag exclusion, history walk, artifact
selection and deletion.
"""

__all__ = [
    "ReapReport",
    "horizon_reached",
    "is_excluded",
    "reap",
    "reap_run",
    "remove_artifact",
    "resolve_tagged_commits",
    "run_retention",
    "select_expired",
    "walk_history",
]

from artifact_reaper.retention.history import horizon_reached, walk_history
from artifact_reaper.retention.reaper import (
    ReapReport,
    is_excluded,
    reap,
    reap_run,
    remove_artifact,
    run_retention,
    select_expired,
)
from artifact_reaper.retention.tags import resolve_tagged_commits
