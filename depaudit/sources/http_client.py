"""Base HTTP client shared by advisory and registry sources."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from depaudit import __version__
from depaudit.core.config.settings import RetrySettings
from depaudit.core.exceptions.errors import (
    AuthenticationError,
    HTTPStatusError,
    NetworkError,
    RateLimitError,
)
from depaudit.core.logger.logger import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and timeout parameters for one client."""

    retries: int = 3
    min_delay: float = 1.0
    max_delay: float = 30.0
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            retries=settings.retries,
            min_delay=settings.min_delay,
            max_delay=settings.max_delay,
            timeout=settings.timeout,
        )

    def backoff(self, attempt: int) -> float:
        """Exponential delay before retry number ``attempt`` (1-based)."""
        return min(self.max_delay, self.min_delay * (2 ** (attempt - 1)))


@dataclass
class HTTPResponse:
    """A fully read HTTP response."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    data: Any = None


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header into seconds.

    Args:
        value: Header value, either delta-seconds or an HTTP-date.
        now: Reference time for HTTP-dates. Defaults to the current UTC time.

    Returns:
        Non-negative delay in seconds, or None if absent or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


class BaseClient:
    """Base class for HTTP API clients.

    Provides a shared aiohttp session, JSON decoding, status-code mapping
    onto depaudit errors, and retries with exponential backoff.
    """

    def __init__(
        self,
        base_url: str | None = None,
        retry_policy: RetryPolicy | None = None,
        source_name: str = "http",
    ) -> None:
        """Initialize the base client.

        Args:
            base_url: Base URL for relative request paths.
            retry_policy: Retry and timeout parameters.
            source_name: Name used in errors and log messages.
        """
        self.base_url = base_url
        self.retry_policy = retry_policy or RetryPolicy()
        self.source_name = source_name
        self.timeout = ClientTimeout(total=self.retry_policy.timeout)
        self._session: ClientSession | None = None

    async def __aenter__(self) -> "BaseClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """Ensure aiohttp session exists.

        Returns:
            ClientSession instance.
        """
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=self.timeout,
                headers=self._get_default_headers(),
            )
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": f"depaudit/{__version__}",
        }

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _build_url(self, url: str) -> str:
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"
        return url

    async def _perform(
        self,
        method: str,
        url: str,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> HTTPResponse:
        """Send one request and read the whole body.

        Raises:
            ClientError: On connection failures.
            asyncio.TimeoutError: When the request exceeds the timeout.
        """
        session = await self._ensure_session()
        async with session.request(method, url, json=json_data, headers=headers) as response:
            text = await response.text()
            data: Any = text
            if "json" in response.headers.get("Content-Type", "") and text:
                try:
                    data = json.loads(text)
                except ValueError:
                    data = text
            return HTTPResponse(
                status=response.status,
                headers=dict(response.headers),
                data=data,
            )

    async def _request(
        self,
        url: str,
        method: str = "GET",
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make an HTTP request with retries.

        Network errors and statuses 429/500/502/503/504 are retried up to
        ``retry_policy.retries`` times. A Retry-After header overrides the
        exponential delay, capped at ``retry_policy.max_delay``.

        Args:
            url: Absolute URL or path relative to ``base_url``.
            method: HTTP method.
            json_data: JSON body.
            headers: Extra headers for this request.

        Returns:
            Decoded JSON body, or the text body for non-JSON responses.

        Raises:
            AuthenticationError: On 401 or 403.
            RateLimitError: When 429 persists after all retries.
            HTTPStatusError: On other error statuses.
            NetworkError: When the connection keeps failing.
        """
        full_url = self._build_url(url)
        policy = self.retry_policy
        max_attempts = policy.retries + 1

        for attempt in range(1, max_attempts + 1):
            logger.debug(f"Request: {method} {full_url} (attempt {attempt})")
            try:
                response = await self._perform(method, full_url, json_data, headers)
            except (ClientError, asyncio.TimeoutError) as e:
                message = str(e) or type(e).__name__
                if attempt >= max_attempts:
                    raise NetworkError(
                        f"{self.source_name} request failed after {attempt} attempts: {message}",
                        source=self.source_name,
                    ) from e
                delay = policy.backoff(attempt)
                logger.warning(
                    f"{self.source_name} request failed (attempt {attempt}/{max_attempts}): {message}"
                )
                await asyncio.sleep(delay)
                continue

            if response.status < 400:
                return response.data

            error = self._status_error(response)
            if response.status not in RETRYABLE_STATUSES or attempt >= max_attempts:
                raise error

            if error.retry_after is not None:
                delay = min(error.retry_after, policy.max_delay)
            else:
                delay = policy.backoff(attempt)
            logger.warning(
                f"{self.source_name} request failed (attempt {attempt}/{max_attempts}): "
                f"HTTP {response.status}, retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

        # range() above always returns or raises
        raise NetworkError(f"{self.source_name} request failed", source=self.source_name)

    def _status_error(self, response: HTTPResponse) -> HTTPStatusError | AuthenticationError:
        status = response.status
        body = response.data if isinstance(response.data, str) else json.dumps(response.data)
        message = f"{self.source_name} HTTP {status}: {body[:200]}"

        if status in (401, 403):
            return AuthenticationError(message, source=self.source_name)

        retry_after = parse_retry_after(response.headers.get("Retry-After"))
        if status == 429:
            return RateLimitError(message, retry_after=retry_after, source=self.source_name)
        return HTTPStatusError(message, status, retry_after=retry_after, source=self.source_name)

    async def get(self, url: str, headers: dict[str, str] | None = None) -> Any:
        return await self._request(url, "GET", headers=headers)

    async def post(
        self,
        url: str,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request(url, "POST", json_data=json_data, headers=headers)
