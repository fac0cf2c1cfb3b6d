"""
Artifact Reaper Host Module.

Provides the retrying gateway to the GitHub REST API.
"""

__all__ = ["GitHubGateway", "HostConfig", "RequestSpec"]

from artifact_reaper.host.client import GitHubGateway, HostConfig, RequestSpec
