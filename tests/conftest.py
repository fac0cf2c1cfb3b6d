"""Pytest configuration and fixtures."""

import re
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from artifact_reaper.config import Settings
from artifact_reaper.host.client import GitHubGateway, HostConfig

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

_REPO_PATH = re.compile(r"/repos/(?P<owner>[^/]+)/(?P<repo>[^/]+)/(?P<rest>.+)")
_RUN_ARTIFACTS = re.compile(r"actions/runs/(?P<run_id>\d+)/artifacts")
_ARTIFACT = re.compile(r"actions/artifacts/(?P<artifact_id>\d+)")


def days_ago(days: float) -> str:
    """GitHub-style timestamp ``days`` before NOW."""
    return (NOW - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%SZ")


class FakeGitHub:
    """In-memory GitHub host served through httpx.MockTransport."""

    def __init__(self):
        self.runs: list[dict[str, Any]] = []
        self.artifacts: dict[int, list[dict[str, Any]]] = {}
        self.tags: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.deleted: list[int] = []
        self._queued: dict[tuple[str, str], list[Any]] = {}

    def add_run(
        self,
        run_id: int,
        age_days: float,
        sha: str | None = None,
        artifacts: Iterable[tuple[int, float]] = (),
    ) -> None:
        """Add a run with (artifact_id, age_days) artifacts."""
        self.runs.append(
            {
                "id": run_id,
                "head_sha": sha or f"sha-{run_id}",
                "created_at": days_ago(age_days),
                "status": "completed",
            }
        )
        self.runs.sort(key=lambda run: run["created_at"], reverse=True)
        self.artifacts[run_id] = [
            {"id": artifact_id, "name": f"build-{artifact_id}", "created_at": days_ago(age)}
            for artifact_id, age in artifacts
        ]

    def add_tag(self, name: str, sha: str) -> None:
        self.tags.append({"name": name, "commit": {"sha": sha, "url": "https://example"}})

    def queue(self, method: str, path: str, *responses: Any) -> None:
        """Answer the next requests to ``path`` with the given responses or exceptions."""
        self._queued.setdefault((method, path), []).extend(responses)

    def requests_to(self, method: str, pattern: str = "") -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and pattern in r.url.path
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        queued = self._queued.get((request.method, request.url.path))
        if queued:
            response = queued.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

        match = _REPO_PATH.fullmatch(request.url.path)
        if match is None:
            return httpx.Response(404, json={"message": "Not Found"})
        rest = match["rest"]

        if request.method == "GET" and rest == "tags":
            return self._page(request, self.tags, None)
        if request.method == "GET" and rest == "actions/runs":
            return self._page(request, self.runs, "workflow_runs")

        run_match = _RUN_ARTIFACTS.fullmatch(rest)
        if request.method == "GET" and run_match:
            run_id = int(run_match["run_id"])
            return self._page(request, self.artifacts.get(run_id, []), "artifacts")

        artifact_match = _ARTIFACT.fullmatch(rest)
        if request.method == "DELETE" and artifact_match:
            artifact_id = int(artifact_match["artifact_id"])
            for artifacts in self.artifacts.values():
                for artifact in artifacts:
                    if artifact["id"] == artifact_id:
                        artifacts.remove(artifact)
                        self.deleted.append(artifact_id)
                        return httpx.Response(204)

        return httpx.Response(404, json={"message": "Not Found"})

    @staticmethod
    def _page(
        request: httpx.Request, items: list[dict[str, Any]], key: str | None
    ) -> httpx.Response:
        per_page = int(request.url.params.get("per_page", 30))
        page = int(request.url.params.get("page", 1))
        chunk = items[(page - 1) * per_page : page * per_page]

        headers = {}
        if page * per_page < len(items):
            next_url = request.url.copy_set_param("page", str(page + 1))
            headers["Link"] = f'<{next_url}>; rel="next"'

        body: Any = chunk if key is None else {"total_count": len(items), key: chunk}
        return httpx.Response(200, json=body, headers=headers)


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Provide an empty fake GitHub host."""
    return FakeGitHub()


@pytest.fixture
def sleeps() -> AsyncMock:
    """Stand-in for asyncio.sleep so retries do not wait."""
    return AsyncMock()


@pytest.fixture
def make_gateway(fake_github: FakeGitHub, sleeps: AsyncMock) -> Callable[..., GitHubGateway]:
    """Build gateways talking to the fake host."""

    def factory(**kwargs: Any) -> GitHubGateway:
        return GitHubGateway(
            HostConfig(token="test-token"),
            transport=httpx.MockTransport(fake_github.handle),
            sleep=sleeps,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings for octo/widgets with a 30-day cutoff."""

    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "owner": "octo",
            "repo": "widgets",
            "retention_cutoff": NOW - timedelta(days=30),
        }
        values.update(overrides)
        return Settings(**values)

    return factory
