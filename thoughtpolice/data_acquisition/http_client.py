"""
JSON-over-HTTP client with bounded retries for the Reddit listing API.

Transient failures (connection resets, DNS failures, aborted connections,
timeouts and 502/503/504) are retried with exponential backoff. Everything
that is still failing afterwards is translated into the NetworkError
taxonomy so callers never see raw httpx exceptions.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..core.exceptions import (
    FetchError,
    FetchTimeoutError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ServiceUnavailableError,
)
from ..foundation.config import HttpConfig
from ..foundation.logging import LoggerMixin
from ..foundation.retry import RetryConfig, RetryError, RetryStrategy, RetryableOperation

RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


def is_transient(error: Exception) -> bool:
    """Whether an httpx error is worth another attempt."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError))


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        # HTTP-date form is not used by the listing API
        return None


class HttpRetryClient(LoggerMixin):
    """Async JSON fetcher with retry, backoff and error translation."""

    def __init__(
        self,
        config: Optional[HttpConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        verbose: bool = False
    ):
        """Initialize the client.

        Args:
            config: HTTP settings; defaults to HttpConfig()
            client: Pre-built httpx client (tests pass one with a MockTransport)
            sleep: Backoff sleep, injectable for tests
            verbose: Log every attempt and retry at DEBUG
        """
        self.config = config or HttpConfig()
        self.headers = {
            'User-Agent': self.config.user_agent,
            'Accept': 'application/json'
        }
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self.verbose = verbose

        self.retry_config = RetryConfig(
            max_attempts=self.config.max_retries + 1,
            base_delay=self.config.base_delay,
            max_delay=self.config.max_delay,
            strategy=RetryStrategy.EXPONENTIAL,
            backoff_factor=self.config.backoff_factor,
            jitter=True,
            exceptions=(httpx.HTTPError,),
            retry_if=is_transient
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=self.config.timeout,
                follow_redirects=True
            )
        return self._client

    def absolute_url(self, path_or_url: str) -> str:
        if path_or_url.startswith(('http://', 'https://')):
            return path_or_url
        return f"{self.config.base_url}/{path_or_url.lstrip('/')}"

    async def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document.

        Raises:
            NetworkError: one of its subclasses, after retries where applicable
        """
        url = self.absolute_url(url)
        operation = RetryableOperation(
            self.retry_config,
            on_retry=lambda attempt, error, delay: self._log_retry(url, attempt, error, delay),
            sleep=self._sleep
        )

        try:
            response = await operation.aexecute(self._get, url, params)
        except RetryError as e:
            raise self._translate(e.last_exception, url) from e.last_exception
        except httpx.HTTPError as e:
            raise self._translate(e, url) from e

        try:
            return response.json()
        except ValueError as e:
            raise FetchError("invalid JSON in response", url=url) from e

    async def probe(self, url: str, timeout: float = 5.0) -> bool:
        """Single unretried GET; True when the endpoint answers below 400."""
        url = self.absolute_url(url)
        try:
            response = await self.client.get(url, headers=self.headers, timeout=timeout)
        except httpx.HTTPError as e:
            self.logger.warning("Health probe failed", url=url, error=str(e))
            return False
        self.trace("Health probe answered", url=url, status_code=response.status_code)
        return response.status_code < 400

    async def _get(self, url: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        self.trace("GET", url=url, params=params)
        response = await self.client.get(
            url, params=params, headers=self.headers, timeout=self.config.timeout
        )
        self.trace("Response", url=url, status_code=response.status_code)
        response.raise_for_status()
        return response

    def _log_retry(self, url: str, attempt: int, error: Exception, delay: float) -> None:
        self.trace(
            f"Retrying after transient failure ({attempt}/{self.config.max_retries})",
            url=url,
            error=str(error),
            delay_seconds=round(delay, 3)
        )

    def _translate(self, error: Exception, url: str) -> NetworkError:
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            if status == 404:
                return NotFoundError(url=url)
            if status == 429:
                return RateLimitedError(
                    url=url,
                    retry_after=_parse_retry_after(error.response.headers.get('Retry-After'))
                )
            if status == 503:
                return ServiceUnavailableError(url=url)
            if status >= 500:
                return ServerError(status, url=url)
            return FetchError(f"HTTP {status}", url=url, status_code=status)

        if isinstance(error, httpx.TimeoutException):
            return FetchTimeoutError(url=url)

        return FetchError(str(error) or error.__class__.__name__, url=url)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HttpRetryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
