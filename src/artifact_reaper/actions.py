"""
GitHub Actions runtime adapter.

Reads action inputs the way the Actions runner exposes them and
reports failures as workflow commands.
"""

from collections.abc import Mapping

import typer

DEVELOPMENT_ENV_VAR = "REAPER_ENV"


def get_input(name: str, environ: Mapping[str, str]) -> str:
    """Read an action input (``INPUT_<NAME>``), trimmed; empty when unset."""
    key = f"INPUT_{name.replace(' ', '_').upper()}"
    return environ.get(key, "").strip()


def is_development(environ: Mapping[str, str]) -> bool:
    """Return True when running outside of a workflow, for local testing."""
    return environ.get(DEVELOPMENT_ENV_VAR) == "dev"


def collect_inputs(
    environ: Mapping[str, str], *, development: bool
) -> dict[str, str | None]:
    """
    Gather the raw configuration for one invocation.

    Workflows supply ``age`` and ``skip-tags`` as action inputs; local
    development reads ``AGE`` and ``SKIP_TAGS`` from the environment.
    """
    if development:
        age = environ.get("AGE")
        skip_tags = environ.get("SKIP_TAGS")
    else:
        age = get_input("age", environ)
        skip_tags = get_input("skip-tags", environ)

    return {
        "repository": environ.get("GITHUB_REPOSITORY"),
        "age": age,
        "skip-tags": skip_tags,
    }


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def report_failure(message: str) -> None:
    """Mark the workflow step as failed with the given message."""
    typer.echo(f"::error::{_escape_data(message)}")
