"""
Artifact Reaper Exception Hierarchy.

Defines all custom exceptions used across the reaper.
Provides consistent error handling and debugging information.
"""

from typing import Any


class ArtifactReaperError(Exception):
    """
    Base exception for all Artifact Reaper errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize an ArtifactReaperError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ArtifactReaperError):
    """
    Errors in configuration loading or validation.

    Raised when:
    - Required inputs are missing
    - The repository slug is not of the form owner/name
    - The age expression cannot be parsed
    - Required environment variables are not set
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        env_var: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a ConfigurationError.

        Args:
            message: Human-readable error message
            config_key: Configuration key if applicable
            env_var: Environment variable name if applicable
            details: Optional structured data for debugging
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        if env_var:
            details["env_var"] = env_var

        super().__init__(message, details=details)
        self.config_key = config_key
        self.env_var = env_var


class HostError(ArtifactReaperError):
    """
    Errors from the remote history host.

    Carries the request that failed so log lines and the final
    failure message name the endpoint involved.
    """

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a HostError.

        Args:
            message: Human-readable error message
            method: HTTP method of the failed request
            endpoint: Endpoint of the failed request
            status_code: HTTP status code if applicable
            details: Optional structured data for debugging
        """
        details = details or {}
        if method:
            details["method"] = method
        if endpoint:
            details["endpoint"] = endpoint
        if status_code:
            details["status_code"] = status_code

        super().__init__(message, details=details)
        self.method = method
        self.endpoint = endpoint
        self.status_code = status_code


class HostOperationError(HostError):
    """
    A list or delete call failed for a non-transient reason.

    Network faults, permission errors and missing resources all end
    up here. These are never retried.
    """


class TransientHostError(HostError):
    """Raised when the host asks the client to slow down."""

    kind = "throttled"

    def __init__(
        self,
        message: str,
        *,
        retry_after: float = 0,
        **kwargs,
    ):
        details = kwargs.pop("details", {}) or {}
        details["retry_after_seconds"] = retry_after
        kwargs["details"] = details

        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class RateLimitError(TransientHostError):
    """Raised when the request quota is exhausted."""

    kind = "rate_limit"


class AbuseLimitError(TransientHostError):
    """Raised when the host's abuse detection throttles requests."""

    kind = "abuse"


class BatchFailure(ArtifactReaperError):
    """
    Aggregate failure of a reap batch.

    Wraps the first error raised by any run-level or artifact-level
    operation. Deletions already issued are not rolled back.
    """

    def __init__(self, message: str, *, cause: BaseException):
        super().__init__(
            message,
            details={"cause": f"{cause.__class__.__name__}: {cause}"},
        )
        self.cause = cause


def format_exception(error: BaseException) -> str:
    """
    Format an exception for user-friendly display.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, ArtifactReaperError):
        return str(error)
    return f"{error.__class__.__name__}: {error}"


def is_retriable_error(error: BaseException) -> bool:
    """Return True if the gateway treats the error as transient."""
    return isinstance(error, TransientHostError)
