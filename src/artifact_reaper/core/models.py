"""
Pydantic models for the entities read from the history host.

All of them are read-only snapshots rebuilt on every invocation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WorkflowRun(BaseModel):
    """One recorded execution of a workflow."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: int = Field(description="Workflow run ID")
    head_commit_id: str = Field(alias="head_sha", description="SHA of the head commit")
    created_at: datetime = Field(description="Creation timestamp")


class Artifact(BaseModel):
    """A stored build output attached to a workflow run."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(description="Artifact ID")
    name: str | None = Field(default=None, description="Artifact name")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")


class CommitRef(BaseModel):
    """Commit a tag points at."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    sha: str


class Tag(BaseModel):
    """A repository tag."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    commit: CommitRef

    @property
    def commit_sha(self) -> str:
        """SHA of the tagged commit."""
        return self.commit.sha
