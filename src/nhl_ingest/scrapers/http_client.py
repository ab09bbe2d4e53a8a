from typing import Any, Awaitable, Callable, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from nhl_ingest.config.settings import settings

# 503 is treated like 429: the upstream uses it for throttling
RATE_LIMIT_STATUS_CODES = {429, 503}


class ScraperError(Exception):
    """Base exception for upstream access failures."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RateLimitError(ScraperError):
    """Upstream throttled the request (429/503). Retried with exponential backoff."""


class ServerError(ScraperError):
    """5xx response or transport failure. Retried with linear backoff."""


class ClientError(ScraperError):
    """Any other failure. Permanent, never retried."""


class RetryExhaustedError(ScraperError):
    """All attempts for a URL failed with retryable errors."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"Max retries ({attempts}) exceeded for {url}", url=url)
        self.attempts = attempts


def classify_response(response: httpx.Response) -> Optional[ScraperError]:
    """Maps a non-2xx response to the error it should raise, or None on success."""
    status = response.status_code
    url = str(response.request.url)
    if 200 <= status < 300:
        return None
    if status in RATE_LIMIT_STATUS_CODES:
        return RateLimitError(f"Rate limited ({status}) on {url}", url, status)
    if status >= 500:
        return ServerError(f"Server error ({status}) on {url}", url, status)
    return ClientError(f"HTTP {status} on {url}", url, status)


class RetryingHTTPClient:
    """Single GET with classified retry and backoff.

    Rate-limited responses wait ``rate_limit_backoff_base * 2 ** attempt``
    seconds, other server errors ``server_error_backoff_step * (attempt + 1)``,
    where ``attempt`` counts from zero. Client errors are raised at once.
    There is no jitter.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: Optional[int] = None,
        rate_limit_backoff_base: Optional[float] = None,
        server_error_backoff_step: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )
        self.max_attempts = max_attempts or settings.max_attempts
        self.rate_limit_backoff_base = (
            settings.rate_limit_backoff_base
            if rate_limit_backoff_base is None
            else rate_limit_backoff_base
        )
        self.server_error_backoff_step = (
            settings.server_error_backoff_step
            if server_error_backoff_step is None
            else server_error_backoff_step
        )
        self._sleep = sleep

    def backoff_for(self, error: BaseException, attempt: int) -> float:
        """Seconds to wait after the zero-based ``attempt`` failed with ``error``."""
        if isinstance(error, RateLimitError):
            return self.rate_limit_backoff_base * 2**attempt
        return self.server_error_backoff_step * (attempt + 1)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.backoff_for(
            retry_state.outcome.exception(), retry_state.attempt_number - 1
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        kind = "Rate limited" if isinstance(error, RateLimitError) else "Server error"
        logger.warning(
            f"{kind} on {getattr(error, 'url', '?')}, waiting "
            f"{retry_state.next_action.sleep:.1f}s before retry "
            f"{retry_state.attempt_number}/{self.max_attempts}"
        )

    async def _get_once(self, url: str) -> httpx.Response:
        try:
            response = await self.client.get(url)
        except httpx.TransportError as e:
            raise ServerError(f"Transport error on {url}: {e}", url) from e
        error = classify_response(response)
        if error:
            raise error
        return response

    async def fetch(self, url: str) -> httpx.Response:
        """GETs ``url``, retrying throttling and server errors.

        Raises:
            ClientError: On a permanent failure (first occurrence).
            RetryExhaustedError: When every attempt failed with a retryable error.
        """
        retry_kwargs = {}
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((RateLimitError, ServerError)),
            before_sleep=self._log_retry,
            **retry_kwargs,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._get_once(url)
        except RetryError as e:
            logger.error(f"Max retries exceeded for {url}. Last error: {e.last_attempt.exception()}")
            raise RetryExhaustedError(url, self.max_attempts) from e.last_attempt.exception()
        except ClientError as e:
            logger.debug(f"Permanent failure for {url}: {e}")
            raise

    async def fetch_json(self, url: str) -> Any:
        """Fetches ``url`` and decodes the JSON body."""
        response = await self.fetch(url)
        try:
            return response.json()
        except ValueError as e:
            raise ClientError(
                f"Undecodable JSON body from {url}", url, response.status_code
            ) from e

    async def close(self):
        """Closes the underlying HTTP client."""
        await self.client.aclose()
        logger.info("Closed upstream HTTP client")
