"""
Artifact Reaper CLI - Command-line interface.

Deletes expired workflow artifacts of one repository per invocation.
"""

import asyncio
import logging
import os
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from artifact_reaper.actions import collect_inputs, is_development, report_failure
from artifact_reaper.config import Settings, resolve_settings
from artifact_reaper.core.exceptions import format_exception
from artifact_reaper.host.client import GitHubGateway
from artifact_reaper.retention.reaper import ReapReport, run_retention

app = typer.Typer(
    name="artifact-reaper",
    help="Artifact Reaper - Delete expired GitHub Actions artifacts",
    no_args_is_help=True,
)
console = Console()

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Send log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _execute(settings: Settings) -> ReapReport:
    async with GitHubGateway(retries_enabled=settings.retries_enabled) as gateway:
        return await run_retention(gateway, settings)


@app.command()
def run(
    repository: Optional[str] = typer.Option(
        None, "--repository", "-R", help="Repository as owner/name (default: $GITHUB_REPOSITORY)"
    ),
    age: Optional[str] = typer.Option(
        None, "--age", "-a", help='Maximum artifact age, e.g. "30 days"'
    ),
    skip_tags: Optional[str] = typer.Option(
        None, "--skip-tags", "-s", help="Keep artifacts of tagged commits (yes/no)"
    ),
    dry_run: Optional[bool] = typer.Option(
        None,
        "--dry-run/--no-dry-run",
        help="Only log what would be removed (default: on in development)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Delete artifacts older than the configured age."""
    configure_logging(verbose)

    development = is_development(os.environ)
    if development:
        load_dotenv()

    inputs = collect_inputs(os.environ, development=development)
    if repository is not None:
        inputs["repository"] = repository
    if age is not None:
        inputs["age"] = age
    if skip_tags is not None:
        inputs["skip-tags"] = skip_tags

    try:
        settings = resolve_settings(
            inputs, dry_run=development if dry_run is None else dry_run
        )

        console.print(
            Panel.fit(
                f"[bold blue]Artifact Reaper[/bold blue]\n"
                f"Repository: {settings.repository}\n"
                f"Cutoff: {settings.retention_cutoff.isoformat()}\n"
                f"Skip tagged commits: {settings.skip_tagged_commits}\n"
                f"Dry run: {settings.dry_run}",
            )
        )

        report = asyncio.run(_execute(settings))
    except Exception as e:
        logger.debug("Invocation failed", exc_info=True)
        report_failure(format_exception(e))
        raise typer.Exit(1)

    table = Table(title="Dry Run Summary" if report.dry_run else "Summary")
    table.add_column("Runs walked", justify="right")
    table.add_column("Tagged runs skipped", justify="right")
    table.add_column(
        "Artifacts to remove" if report.dry_run else "Artifacts removed",
        justify="right",
        style="green",
    )
    table.add_row(
        str(report.runs_walked),
        str(len(report.skipped_runs)),
        str(len(report.selected)),
    )
    console.print(table)


@app.command()
def version():
    """Show Artifact Reaper version."""
    from artifact_reaper import __version__

    console.print(f"Artifact Reaper v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
