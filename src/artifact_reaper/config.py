"""
Configuration resolution.

Turns raw key/value inputs (repository slug, age expression, tag-skip
flag) into an immutable Settings value for one invocation.
"""

import calendar
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from artifact_reaper.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

# Fixed look-back bound of the history walk, independent of the retention age.
HISTORY_HORIZON = timedelta(days=90)

_SHORT_UNITS = {
    "y": "years",
    "Q": "quarters",
    "M": "months",
    "w": "weeks",
    "d": "days",
    "h": "hours",
    "m": "minutes",
    "s": "seconds",
    "ms": "milliseconds",
}

_LONG_UNITS = {
    name: plural
    for plural in _SHORT_UNITS.values()
    for name in (plural, plural[:-1])
}

# Units subtracted on the calendar, expressed in months.
_CALENDAR_UNITS = {"years": 12, "quarters": 3, "months": 1}

_TRUE_VALUES = {"y", "yes", "true", "t", "1", "on"}
_FALSE_VALUES = {"n", "no", "false", "f", "0", "off"}


class Settings(BaseModel):
    """Resolved settings for a single invocation."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(description="Repository owner")
    repo: str = Field(description="Repository name")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=100)
    retention_cutoff: datetime = Field(
        description="Artifacts created before this instant are eligible for deletion"
    )
    skip_tagged_commits: bool = False
    dry_run: bool = False
    retries_enabled: bool = True

    @field_validator("retention_cutoff")
    @classmethod
    def validate_cutoff(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def repository(self) -> str:
        """Repository slug in owner/name form."""
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class RetentionAge:
    """A parsed "<number> <unit>" age expression."""

    amount: int
    unit: str

    def __str__(self) -> str:
        return f"{self.amount} {self.unit}"

    def cutoff(self, now: datetime) -> datetime:
        """Return ``now`` minus this age."""
        try:
            if self.unit in _CALENDAR_UNITS:
                return _subtract_months(now, self.amount * _CALENDAR_UNITS[self.unit])
            return now - timedelta(**{self.unit: self.amount})
        except (OverflowError, ValueError) as e:
            raise ConfigurationError(
                f"Age is out of range: {self}",
                config_key="age",
            ) from e


def _subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping to the last day of the month."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _normalize_unit(unit: str) -> str | None:
    if unit in _SHORT_UNITS:
        return _SHORT_UNITS[unit]
    return _LONG_UNITS.get(unit.lower())


def parse_age(expression: str | None) -> RetentionAge:
    """
    Parse an age expression such as ``"30 days"``.

    Args:
        expression: "<positive integer> <unit>"

    Returns:
        RetentionAge with the amount and canonical (plural) unit

    Raises:
        ConfigurationError: If the expression is missing or malformed
    """
    if not expression or not expression.strip():
        raise ConfigurationError("Age is not set", config_key="age")

    parts = expression.split()
    if len(parts) != 2:
        raise ConfigurationError(
            f"Age must be of the form '<number> <unit>', got '{expression}'",
            config_key="age",
        )

    amount_str, unit_str = parts
    if not amount_str.isdecimal() or int(amount_str) <= 0:
        raise ConfigurationError(
            f"Age must start with a positive whole number, got '{amount_str}'",
            config_key="age",
        )

    unit = _normalize_unit(unit_str)
    if unit is None:
        raise ConfigurationError(
            f"Unknown age unit '{unit_str}'",
            config_key="age",
            details={"known_units": sorted(_LONG_UNITS)},
        )

    return RetentionAge(amount=int(amount_str), unit=unit)


def parse_repository(slug: str | None) -> tuple[str, str]:
    """Split an ``owner/name`` slug."""
    if not slug or not slug.strip():
        raise ConfigurationError("Repository is not set", config_key="repository")

    parts = slug.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(
            f"Repository must be of the form 'owner/name', got '{slug}'",
            config_key="repository",
        )

    return parts[0], parts[1]


def parse_flag(value: str | None, default: bool = False) -> bool:
    """Interpret a boolean-like input value."""
    if value is None or not value.strip():
        return default

    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized not in _FALSE_VALUES:
        logger.warning(f"Unrecognized boolean value '{value}', treating it as false")
    return False


def resolve_settings(
    inputs: Mapping[str, str | None],
    *,
    dry_run: bool = False,
    now: datetime | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Settings:
    """
    Build Settings from raw inputs.

    Args:
        inputs: Lookup with ``repository``, ``age`` and optional ``skip-tags``
        dry_run: Whether deletions are simulated
        now: Reference time, defaults to the current UTC time
        page_size: Items requested per page

    Returns:
        Immutable Settings

    Raises:
        ConfigurationError: If a required input is missing or malformed
    """
    now = now or datetime.now(timezone.utc)

    owner, repo = parse_repository(inputs.get("repository"))

    raw_age = inputs.get("age")
    if not raw_age or not raw_age.strip():
        raise ConfigurationError(
            "Input required and not supplied: age",
            config_key="age",
        )
    age = parse_age(raw_age)
    cutoff = age.cutoff(now)

    logger.info(f"Maximum artifact age: {age} (created before {cutoff.isoformat()})")

    if cutoff < now - HISTORY_HORIZON:
        logger.warning(
            f"Age {age} reaches past the {HISTORY_HORIZON.days}-day history horizon; "
            f"runs older than that are not inspected"
        )

    return Settings(
        owner=owner,
        repo=repo,
        page_size=page_size,
        retention_cutoff=cutoff,
        skip_tagged_commits=parse_flag(inputs.get("skip-tags")),
        dry_run=dry_run,
    )
