"""Tests for CLI module."""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from artifact_reaper.cli import app
from artifact_reaper.retention.reaper import ReapReport

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every invocation from a workflow-like environment."""
    for name in ("REAPER_ENV", "AGE", "SKIP_TAGS", "INPUT_AGE", "INPUT_SKIP-TAGS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GITHUB_REPOSITORY", "octo/widgets")
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")


@pytest.fixture
def retention():
    """Replace the pipeline with a mock reporting on the settings it receives."""

    def report_for(gateway, settings):
        return ReapReport(
            runs_walked=4,
            skipped_runs=[2],
            selected=[11, 12, 13],
            dry_run=settings.dry_run,
        )

    with patch(
        "artifact_reaper.cli.run_retention", new=AsyncMock(side_effect=report_for)
    ) as mock:
        yield mock


class TestVersionCommand:
    """Tests for the version command."""

    def test_version(self) -> None:
        """Show version information."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "Artifact Reaper v0.1.0" in result.stdout


class TestRunCommand:
    """Tests for the run command."""

    def test_missing_age_fails(self, retention) -> None:
        """A missing age fails the step before any request."""
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 1
        assert "::error::Input required and not supplied: age" in result.stdout
        retention.assert_not_awaited()

    def test_malformed_age_fails(self, retention) -> None:
        result = runner.invoke(app, ["run"], env={"INPUT_AGE": "thirty days"})
        assert result.exit_code == 1
        assert "::error::Age must start with a positive whole number" in result.stdout

    def test_missing_token_fails(self, retention, monkeypatch: pytest.MonkeyPatch) -> None:
        """The token is required once settings are valid."""
        monkeypatch.delenv("GITHUB_TOKEN")
        result = runner.invoke(app, ["run", "--age", "30 days"])
        assert result.exit_code == 1
        assert "::error::GitHub token not configured" in result.stdout
        retention.assert_not_awaited()

    def test_workflow_run(self, retention) -> None:
        """Action inputs are resolved and deletions are real by default."""
        result = runner.invoke(
            app, ["run"], env={"INPUT_AGE": "30 days", "INPUT_SKIP-TAGS": "true"}
        )

        assert result.exit_code == 0, result.stdout
        assert "Summary" in result.stdout
        assert "Dry Run Summary" not in result.stdout

        settings = retention.await_args.args[1]
        assert settings.repository == "octo/widgets"
        assert settings.skip_tagged_commits is True
        assert settings.dry_run is False

    def test_options_override_inputs(self, retention) -> None:
        result = runner.invoke(
            app,
            ["run", "-R", "octo/gadgets", "--age", "1 week", "--skip-tags", "no"],
            env={"INPUT_AGE": "30 days", "INPUT_SKIP-TAGS": "true"},
        )

        assert result.exit_code == 0, result.stdout
        settings = retention.await_args.args[1]
        assert settings.repository == "octo/gadgets"
        assert settings.skip_tagged_commits is False

    def test_explicit_dry_run(self, retention) -> None:
        result = runner.invoke(app, ["run", "--age", "30 days", "--dry-run"])

        assert result.exit_code == 0, result.stdout
        assert retention.await_args.args[1].dry_run is True
        assert "Dry Run Summary" in result.stdout

    def test_development_mode(self, retention) -> None:
        """Development mode loads .env, reads plain variables and defaults to dry run."""
        with patch("artifact_reaper.cli.load_dotenv") as load_dotenv:
            result = runner.invoke(
                app, ["run"], env={"REAPER_ENV": "dev", "AGE": "2 weeks"}
            )

        assert result.exit_code == 0, result.stdout
        load_dotenv.assert_called_once()
        assert retention.await_args.args[1].dry_run is True
        assert "Dry Run Summary" in result.stdout

    def test_development_mode_can_delete(self, retention) -> None:
        """--no-dry-run overrides the development default."""
        with patch("artifact_reaper.cli.load_dotenv"):
            result = runner.invoke(
                app,
                ["run", "--no-dry-run"],
                env={"REAPER_ENV": "dev", "AGE": "2 weeks"},
            )

        assert result.exit_code == 0, result.stdout
        assert retention.await_args.args[1].dry_run is False

    def test_pipeline_failure(self, retention) -> None:
        """Errors raised by the pipeline fail the step with their message."""
        retention.side_effect = RuntimeError("boom")
        result = runner.invoke(app, ["run", "--age", "30 days"])
        assert result.exit_code == 1
        assert "::error::RuntimeError: boom" in result.stdout
