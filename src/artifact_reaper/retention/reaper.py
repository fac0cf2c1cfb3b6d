"""
Artifact selection and deletion.

Inspects the artifacts of every walked run, selects the expired ones
and deletes them (or logs them in dry-run mode). Runs are processed
concurrently, as are the deletions within a run.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from artifact_reaper.config import Settings
from artifact_reaper.core.exceptions import BatchFailure
from artifact_reaper.core.models import Artifact, WorkflowRun
from artifact_reaper.host.client import GitHubGateway, RequestSpec
from artifact_reaper.retention.history import walk_history
from artifact_reaper.retention.tags import resolve_tagged_commits

logger = logging.getLogger(__name__)


@dataclass
class ReapReport:
    """Outcome of a completed invocation."""

    runs_walked: int = 0
    skipped_runs: list[int] = field(default_factory=list)
    selected: list[int] = field(default_factory=list)
    dry_run: bool = False


def first_error(error: BaseException) -> BaseException:
    """Return the first leaf exception of a (possibly nested) exception group."""
    while isinstance(error, BaseExceptionGroup) and error.exceptions:
        error = error.exceptions[0]
    return error


def is_excluded(
    run: WorkflowRun, tagged_commits: frozenset[str], settings: Settings
) -> bool:
    """Return True if the run's head commit is tagged and tag-skip is on."""
    return settings.skip_tagged_commits and run.head_commit_id in tagged_commits


def select_expired(artifacts: Iterable[Artifact], cutoff: datetime) -> list[Artifact]:
    """Artifacts created strictly before the cutoff; undated ones are kept."""
    return [
        artifact
        for artifact in artifacts
        if artifact.created_at is not None and artifact.created_at < cutoff
    ]


async def remove_artifact(
    gateway: GitHubGateway, settings: Settings, artifact: Artifact
) -> int:
    """Delete one artifact, or only log it in dry-run mode."""
    if settings.dry_run:
        logger.info(f"Dry run: preventing artifact {artifact.id} from being removed.")
        return artifact.id

    await gateway.call(
        RequestSpec(
            "DELETE",
            f"/repos/{settings.owner}/{settings.repo}/actions/artifacts/{artifact.id}",
        )
    )
    logger.info(f"Successfully removed artifact with id {artifact.id}.")
    return artifact.id


async def reap_run(
    gateway: GitHubGateway, settings: Settings, run: WorkflowRun
) -> list[int]:
    """
    Remove the expired artifacts of one run.

    Returns:
        IDs of the selected artifacts, in host order
    """
    spec = RequestSpec(
        "GET",
        f"/repos/{settings.owner}/{settings.repo}/actions/runs/{run.id}/artifacts",
        items_key="artifacts",
    )
    raw_artifacts = await gateway.paginate(spec, settings.page_size)
    artifacts = [Artifact.model_validate(item) for item in raw_artifacts]
    expired = select_expired(artifacts, settings.retention_cutoff)

    logger.debug(
        f"Run {run.id}: {len(expired)} of {len(artifacts)} artifacts are expired"
    )
    if not expired:
        return []

    async with asyncio.TaskGroup() as group:
        for artifact in expired:
            group.create_task(remove_artifact(gateway, settings, artifact))

    return [artifact.id for artifact in expired]


async def reap(
    gateway: GitHubGateway,
    settings: Settings,
    runs: Sequence[WorkflowRun],
    tagged_commits: frozenset[str] = frozenset(),
) -> ReapReport:
    """
    Process every walked run concurrently.

    Raises:
        BatchFailure: If any artifact listing or deletion fails
    """
    report = ReapReport(runs_walked=len(runs), dry_run=settings.dry_run)

    retained: list[WorkflowRun] = []
    for run in runs:
        if is_excluded(run, tagged_commits, settings):
            logger.info(f"Skipping tagged run {run.head_commit_id}")
            report.skipped_runs.append(run.id)
            continue
        retained.append(run)

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(reap_run(gateway, settings, run)) for run in retained
            ]
    except ExceptionGroup as eg:
        cause = first_error(eg)
        raise BatchFailure(
            f"Reaping artifacts in {settings.repository} failed",
            cause=cause,
        ) from cause

    for task in tasks:
        report.selected.extend(task.result())

    verb = "Would remove" if settings.dry_run else "Removed"
    logger.info(
        f"{verb} {len(report.selected)} artifacts from {len(retained)} runs "
        f"({len(report.skipped_runs)} tagged runs skipped)"
    )
    return report


async def run_retention(
    gateway: GitHubGateway,
    settings: Settings,
    now: datetime | None = None,
) -> ReapReport:
    """
    Run the whole retention pipeline for one repository.

    Tag resolution and the history walk run concurrently; a failure in
    either is re-raised as is, before any artifact is touched.
    """
    tags_task = None
    try:
        async with asyncio.TaskGroup() as group:
            if settings.skip_tagged_commits:
                tags_task = group.create_task(resolve_tagged_commits(gateway, settings))
            runs_task = group.create_task(walk_history(gateway, settings, now=now))
    except ExceptionGroup as eg:
        raise first_error(eg) from None

    tagged_commits = tags_task.result() if tags_task is not None else frozenset()
    return await reap(gateway, settings, runs_task.result(), tagged_commits)
