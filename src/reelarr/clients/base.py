"""Base client for catalog and library API interactions."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, ClassVar, Self

import httpx
from cachetools import TTLCache
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """A catalog or library API call failed.

    Attributes:
        source: Name of the service that failed (e.g. "tmdb")
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


class CatalogRateLimitError(CatalogError):
    """The service answered 429 or otherwise reported its quota exhausted."""


class RateLimiter:
    """Enforce a minimum interval between consecutive requests.

    Callers wait on the limiter in turn, so a burst of lookups is serialized
    rather than sent together.
    """

    def __init__(self, min_interval: float = 1.0) -> None:
        self.min_interval = min_interval
        self._lock = asyncio.Lock()
        self._last_request = 0.0

    async def wait(self) -> None:
        """Sleep until the next request is allowed, then claim the slot."""
        async with self._lock:
            delay = self._last_request + self.min_interval - time.monotonic()
            if delay > 0:
                logger.debug("Rate limiter sleeping %.2fs", delay)
                await asyncio.sleep(delay)
            self._last_request = time.monotonic()


class BaseApiClient:
    """Base client with retry, caching and throttling for JSON APIs.

    This base class provides:
    - HTTP client management with connection pooling
    - Automatic retry with exponential backoff for transient failures
    - Per-client TTL caching for GET requests
    - An optional request floor shared by every call on the instance
    - Context manager protocol for resource cleanup
    - `_parsing()` to report malformed payloads as CatalogError

    Subclasses set `source_name`, override `_default_headers()` or
    `_default_params()` for authentication, and implement their API methods
    with `_get()` for cached requests or `_get_uncached()` for fresh data.
    """

    source_name: ClassVar[str] = "api"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        cache_ttl: int = 300,
        max_retries: int = 3,
        min_request_interval: float = 0.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The base URL of the service
            api_key: The API key for authentication
            timeout: Request timeout in seconds (default 30.0)
            cache_ttl: Cache time-to-live in seconds (default 300)
            max_retries: Maximum number of retry attempts (default 3)
            min_request_interval: Minimum seconds between requests, 0 disables
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.max_retries = max_retries

        self._client: httpx.AsyncClient | None = None
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=1000, ttl=cache_ttl)
        self._cache_lock = asyncio.Lock()
        self._limiter: RateLimiter | None = (
            RateLimiter(min_request_interval) if min_request_interval > 0 else None
        )

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._default_headers(),
            params=self._default_params(),
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not in context.

        Returns:
            The httpx async client

        Raises:
            RuntimeError: If called outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def _default_params(self) -> dict[str, str]:
        return {}

    def _make_cache_key(self, endpoint: str, params: dict[str, Any] | None) -> str:
        """Generate a cache key from endpoint and parameters.

        Args:
            endpoint: The API endpoint path
            params: Query parameters

        Returns:
            A unique cache key string
        """
        params_str = str(sorted((params or {}).items()))
        key_data = f"{endpoint}:{params_str}"
        return hashlib.sha256(key_data.encode()).hexdigest()[:16]

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a cached GET request.

        Args:
            endpoint: The API endpoint path (e.g., "/search/movie")
            params: Optional query parameters

        Returns:
            The JSON response data, or None when the service answered 404

        Raises:
            CatalogRateLimitError: On HTTP 429
            CatalogError: On any other failure (after retries exhausted)
        """
        cache_key = self._make_cache_key(endpoint, params)

        async with self._cache_lock:
            if cache_key in self._cache:
                logger.debug("Cache hit for %s", endpoint)
                return self._cache[cache_key]

        logger.debug("Cache miss for %s, fetching from %s", endpoint, self.source_name)
        data = await self._get_uncached(endpoint, params)

        async with self._cache_lock:
            self._cache[cache_key] = data

        return data

    async def _get_uncached(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make a GET request without caching.

        Args:
            endpoint: The API endpoint path
            params: Optional query parameters

        Returns:
            The JSON response data, or None on 404
        """
        return await self._request_with_retry("GET", endpoint, params=params)

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an HTTP request with retry logic.

        Retries on connection errors and timeouts. Does NOT retry on:
        - 429 (Too Many Requests) - raised as CatalogRateLimitError
        - 404 (Not Found) - returned as None
        - Other HTTP errors - raised as CatalogError

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: The API endpoint path
            params: Optional query parameters
            json: Optional JSON body

        Returns:
            The JSON response data, or None on 404

        Raises:
            CatalogRateLimitError: On HTTP 429
            CatalogError: On other HTTP errors or exhausted retries
        """

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(
                (httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout)
            ),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async def _do_request() -> httpx.Response:
            if self._limiter is not None:
                await self._limiter.wait()
            return await self.client.request(
                method,
                endpoint,
                params=params,
                json=json,
            )

        try:
            response = await _do_request()
        except httpx.HTTPError as e:
            raise CatalogError(self.source_name, f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 404:
            logger.debug("%s returned 404 for %s", self.source_name, endpoint)
            return None
        if response.status_code == 429:
            raise CatalogRateLimitError(self.source_name, f"rate limited on {endpoint}")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CatalogError(
                self.source_name, f"HTTP {response.status_code} for {endpoint}"
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(self.source_name, f"invalid JSON from {endpoint}") from e

    def _log_retry(self, retry_state: Any) -> None:
        """Log retry attempts.

        Args:
            retry_state: Tenacity retry state object
        """
        logger.warning(
            "%s retry attempt %d after error: %s",
            self.source_name,
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else "unknown",
        )

    @contextmanager
    def _parsing(self, endpoint: str) -> Iterator[None]:
        """Report a payload that does not have the expected shape as a CatalogError.

        Args:
            endpoint: The endpoint the payload came from, for the message
        """
        try:
            yield
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise CatalogError(
                self.source_name, f"malformed response from {endpoint}: {e!r}"
            ) from e
