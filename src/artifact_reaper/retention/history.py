"""
History walker.

Pages through workflow runs newest-first and stops once a page reaches
past the fixed history horizon.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from artifact_reaper.config import HISTORY_HORIZON, Settings
from artifact_reaper.core.models import WorkflowRun
from artifact_reaper.host.client import GitHubGateway, RequestSpec

logger = logging.getLogger(__name__)


def horizon_reached(page: Sequence[dict[str, Any]], horizon_start: datetime) -> bool:
    """Return True if any run on the page was created before the horizon."""
    return any(
        WorkflowRun.model_validate(run).created_at < horizon_start for run in page
    )


async def walk_history(
    gateway: GitHubGateway,
    settings: Settings,
    now: datetime | None = None,
) -> list[WorkflowRun]:
    """
    Fetch workflow runs newest-first, bounded by the history horizon.

    The page on which the horizon is crossed is the last page requested.
    Runs on it that are older than the horizon are dropped, so every
    returned run is at most HISTORY_HORIZON old.

    Args:
        gateway: Gateway to the history host
        settings: Resolved settings
        now: Reference time, defaults to the current UTC time; naive values
            are taken as UTC

    Returns:
        Workflow runs, newest first
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    horizon_start = now - HISTORY_HORIZON

    spec = RequestSpec(
        "GET",
        f"/repos/{settings.owner}/{settings.repo}/actions/runs",
        items_key="workflow_runs",
    )
    raw_runs = await gateway.paginate(
        spec,
        settings.page_size,
        stop=lambda page: horizon_reached(page, horizon_start),
    )

    runs = [WorkflowRun.model_validate(run) for run in raw_runs]
    walked = [run for run in runs if run.created_at >= horizon_start]

    logger.info(
        f"Walked {len(walked)} workflow runs in {settings.repository} "
        f"(horizon {horizon_start.isoformat()}, {len(runs) - len(walked)} beyond it)"
    )
    return walked
