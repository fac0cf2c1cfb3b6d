"""
GitHub Gateway - the single chokepoint for calls to the history host.

Wraps an httpx.AsyncClient with a throttling-aware retry policy and
exposes paginated and single-call primitives.
"""

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, cast

import httpx
from pydantic import BaseModel
from tenacity import AsyncRetrying, RetryCallState, stop_never

from artifact_reaper.core.exceptions import (
    AbuseLimitError,
    ConfigurationError,
    HostOperationError,
    RateLimitError,
    TransientHostError,
    is_retriable_error,
)

logger = logging.getLogger(__name__)

StopPredicate = Callable[[list[dict[str, Any]]], bool]

_THROTTLE_STATUSES = (403, 429)
_ABUSE_MARKERS = ("secondary rate limit", "abuse detection")


class HostConfig(BaseModel):
    """Configuration for the GitHub gateway."""

    token: str = ""
    base_url: str = "https://api.github.com"
    timeout_seconds: int = 30
    abuse_retry_after_seconds: int = 60


@dataclass(frozen=True)
class RequestSpec:
    """A request against the host, before pagination parameters are applied."""

    method: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    items_key: str | None = None  # None when the body itself is the list

    @property
    def route(self) -> str:
        return f"{self.method} {self.path}"


class GitHubGateway:
    """
    Retrying client for the GitHub REST API.

    Environment variables:
    - GITHUB_TOKEN: Token used for every request (required)
    - GITHUB_API_URL: API root, for GitHub Enterprise Server
    """

    def __init__(
        self,
        config: HostConfig | None = None,
        *,
        retries_enabled: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the gateway with configuration."""
        self._config = config or self._load_config()
        self._retries_enabled = retries_enabled
        self._sleep = sleep
        self._retry_count = 0

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "artifact-reaper",
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"

        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=headers,
            timeout=self._config.timeout_seconds,
            transport=transport,
        )

    @staticmethod
    def _load_config() -> HostConfig:
        """Load configuration from environment."""
        token = os.getenv("GITHUB_TOKEN", "")
        if not token:
            raise ConfigurationError(
                "GitHub token not configured. Set GITHUB_TOKEN environment variable.",
                env_var="GITHUB_TOKEN",
            )

        return HostConfig(
            token=token,
            base_url=os.getenv("GITHUB_API_URL") or HostConfig().base_url,
        )

    @property
    def retries_enabled(self) -> bool:
        return self._retries_enabled

    @property
    def retry_count(self) -> int:
        """Total retries issued by this gateway so far."""
        return self._retry_count

    async def call(self, spec: RequestSpec) -> Any:
        """
        Issue one non-paginated request.

        Returns:
            Decoded JSON body, or None when the host sends no content

        Raises:
            HostOperationError: For any non-transient failure
            TransientHostError: If throttled and retries are disabled
        """
        response = await self._send(spec.method, spec.path, spec.params)
        if not response.content:
            return None
        return response.json()

    async def pages(
        self, spec: RequestSpec, per_page: int
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield the items of each page, following ``rel="next"`` links."""
        url: str | None = spec.path
        params: dict[str, Any] | None = {**spec.params, "per_page": per_page}

        while url:
            response = await self._send(spec.method, url, params)
            items = self._extract_items(response, spec)
            logger.debug(f"Fetched {len(items)} items from {spec.route}")
            yield items

            # The next link already carries the query string.
            url = response.links.get("next", {}).get("url")
            params = None

    async def paginate(
        self,
        spec: RequestSpec,
        per_page: int,
        stop: StopPredicate | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch and concatenate pages.

        Args:
            spec: Request to paginate
            per_page: Items requested per page
            stop: Called with each page's items after it is fetched; when it
                returns True the page is kept and no further page is requested

        Returns:
            All collected items in host order
        """
        items: list[dict[str, Any]] = []
        async with aclosing(self.pages(spec, per_page)) as pages:
            async for page in pages:
                items.extend(page)
                if stop is not None and stop(page):
                    break
        return items

    async def _send(
        self, method: str, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        """Send a request, retrying while the host throttles us."""
        retrying = AsyncRetrying(
            retry=self._should_retry,
            wait=self._wait_for_hint,
            stop=stop_never,
            sleep=self._sleep,
            reraise=True,
        )

        response: httpx.Response | None = None
        async for attempt in retrying:
            with attempt:
                response = await self._request(method, url, params)
        return response

    async def _request(
        self, method: str, url: str, params: dict[str, Any] | None
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._classify(e, method) from e
        except httpx.HTTPError as e:
            raise HostOperationError(
                f"HTTP error during {method} {url}: {e}",
                method=method,
                endpoint=url,
            ) from e
        return response

    def _should_retry(self, retry_state: RetryCallState) -> bool:
        """Log a throttling signal and decide whether to re-issue the request."""
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if error is None or not is_retriable_error(error):
            return False
        error = cast(TransientHostError, error)

        if error.kind == "rate_limit":
            label = "Request quota exhausted"
        else:
            label = "Abuse detected"

        if not self._retries_enabled:
            logger.warning(
                f"{label} for request {error.method} {error.endpoint}, "
                f"retries are disabled"
            )
            return False

        self._retry_count += 1
        logger.warning(
            f"{label} for request {error.method} {error.endpoint}, "
            f"retry count: {retry_state.attempt_number}, "
            f"total retries: {self._retry_count}; "
            f"retrying after {error.retry_after:g} seconds"
        )
        return True

    @staticmethod
    def _wait_for_hint(retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception()
        return max(getattr(error, "retry_after", 0), 0)

    def _classify(
        self, error: httpx.HTTPStatusError, method: str
    ) -> Exception:
        """Convert an HTTP status error to the matching host exception."""
        response = error.response
        status_code = response.status_code
        endpoint = response.request.url.path
        message = _error_message(response)

        if status_code in _THROTTLE_STATUSES:
            retry_after = _header_seconds(response, "retry-after")

            if response.headers.get("x-ratelimit-remaining") == "0":
                if retry_after is None:
                    reset = _header_seconds(response, "x-ratelimit-reset")
                    retry_after = reset - time.time() if reset is not None else 0
                return RateLimitError(
                    f"Rate limit exhausted: {message}",
                    retry_after=max(retry_after, 0),
                    method=method,
                    endpoint=endpoint,
                    status_code=status_code,
                )

            lowered = message.lower()
            if retry_after is not None or any(m in lowered for m in _ABUSE_MARKERS):
                if retry_after is None:
                    retry_after = self._config.abuse_retry_after_seconds
                return AbuseLimitError(
                    f"Request throttled: {message}",
                    retry_after=retry_after,
                    method=method,
                    endpoint=endpoint,
                    status_code=status_code,
                )

        return HostOperationError(
            f"HTTP error from host: {status_code} {message}",
            method=method,
            endpoint=endpoint,
            status_code=status_code,
        )

    @staticmethod
    def _extract_items(
        response: httpx.Response, spec: RequestSpec
    ) -> list[dict[str, Any]]:
        data = response.json()
        if spec.items_key is None:
            return list(data)
        return list(data.get(spec.items_key, []))

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args):
        """Async context manager exit."""
        await self.aclose()


def _header_seconds(response: httpx.Response, name: str) -> float | None:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of GitHub's error message."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase
