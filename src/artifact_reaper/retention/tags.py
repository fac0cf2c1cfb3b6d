"""Tag exclusion: the set of commits referenced by repository tags."""

import logging

from artifact_reaper.config import Settings
from artifact_reaper.core.models import Tag
from artifact_reaper.host.client import GitHubGateway, RequestSpec

logger = logging.getLogger(__name__)


async def resolve_tagged_commits(
    gateway: GitHubGateway, settings: Settings
) -> frozenset[str]:
    """
    Collect the SHAs of every tagged commit.

    Args:
        gateway: Gateway to the history host
        settings: Resolved settings

    Returns:
        Set of commit SHAs referenced by at least one tag

    Raises:
        Exception: Whatever the fetch raised, after logging it
    """
    spec = RequestSpec("GET", f"/repos/{settings.owner}/{settings.repo}/tags")

    try:
        tags = await gateway.paginate(spec, settings.page_size)
    except Exception as e:
        logger.error(f"Error while requesting tags: {e}")
        raise

    tagged = frozenset(Tag.model_validate(tag).commit_sha for tag in tags)
    logger.info(f"Found {len(tagged)} tagged commits in {settings.repository}")
    return tagged
