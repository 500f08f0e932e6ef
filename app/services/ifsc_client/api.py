"""IFSC results provider client.

Provides async access to the public results service with:
- Fixed Referer header (the provider rejects requests without it)
- Per-client TTL cache keyed by URL
- Error classification
- Optional retry with exponential backoff (off by default)
"""

import asyncio
from enum import Enum
from typing import Any

import httpx
import structlog

from app.config import get_settings
from app.services.ifsc_client.cache import TTLCache

logger = structlog.get_logger(__name__)


class ProviderErrorType(Enum):
    """Classification of provider errors."""

    TIMEOUT = "TIMEOUT"
    NOT_FOUND = "NOT_FOUND"
    HTTP_ERROR = "HTTP_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN = "UNKNOWN"


class ProviderAPIError(Exception):
    """Provider API error with classification."""

    def __init__(self, message: str, error_type: ProviderErrorType, retryable: bool = False):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable


class IFSCClient:
    """
    Client for the IFSC results service.

    Event documents are fetched from ``/api/v1/events/{id}/``; category
    result documents from the ``full_results_url`` each category exposes.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        cache: TTLCache | None = None,
        max_retries: int | None = None,
    ):
        """
        Initialize the provider client.

        Args:
            http_client: Optional pre-built httpx client (tests pass one
                with a MockTransport)
            base_url: Provider base URL, defaults to settings
            cache: Response cache, defaults to a TTLCache from settings
            max_retries: Retries for retryable errors, defaults to settings
        """
        self.settings = get_settings()
        self.base_url = (base_url or self.settings.ifsc_base_url).rstrip("/")
        self.cache = cache or TTLCache(self.settings.provider_cache_ttl_seconds)
        self.max_retries = (
            self.settings.provider_max_retries if max_retries is None else max_retries
        )
        self._http_client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "IFSCClient":
        """Async context manager entry."""
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.settings.provider_timeout_seconds
            )
            self._owns_client = True
        return self._http_client

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(self, path: str, use_cache: bool = True) -> Any:
        """
        GET a JSON document from the provider.

        Args:
            path: Path relative to the base URL, or an absolute URL
            use_cache: Serve from / store into the response cache

        Returns:
            Decoded JSON document

        Raises:
            ProviderAPIError: If the request fails after retries
        """
        url = self._url(path)

        if use_cache:
            cached = self.cache.get(url)
            if cached is not None:
                logger.debug("provider_cache_hit", url=url)
                return cached

        for attempt in range(self.max_retries + 1):
            try:
                client = await self._get_client()
                response = await client.get(
                    url,
                    headers={
                        "Referer": self.settings.ifsc_referer,
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
                data = response.json()
                self.cache.set(url, data)
                return data

            except httpx.TimeoutException:
                if attempt < self.max_retries:
                    await self._backoff(url, attempt, "timeout")
                    continue
                raise ProviderAPIError(
                    f"Request timeout: {url}",
                    ProviderErrorType.TIMEOUT,
                    retryable=True,
                )

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 404:
                    raise ProviderAPIError(
                        f"Not found: {url}",
                        ProviderErrorType.NOT_FOUND,
                        retryable=False,
                    )
                if status == 429 or status >= 500:
                    if attempt < self.max_retries:
                        await self._backoff(url, attempt, f"http_{status}")
                        continue
                    raise ProviderAPIError(
                        f"Server error: {status}",
                        ProviderErrorType.SERVICE_UNAVAILABLE,
                        retryable=True,
                    )
                raise ProviderAPIError(
                    f"Client error {status}: {url}",
                    ProviderErrorType.HTTP_ERROR,
                    retryable=False,
                )

            except httpx.TransportError as e:
                if attempt < self.max_retries:
                    await self._backoff(url, attempt, "transport")
                    continue
                raise ProviderAPIError(
                    f"Transport error: {e}",
                    ProviderErrorType.SERVICE_UNAVAILABLE,
                    retryable=True,
                )

            except ValueError as e:
                raise ProviderAPIError(
                    f"Invalid JSON from {url}: {e}",
                    ProviderErrorType.PARSE_ERROR,
                    retryable=False,
                )

    async def _backoff(self, url: str, attempt: int, reason: str) -> None:
        wait_time = 2**attempt
        logger.warning(
            "provider_request_retrying",
            url=url,
            reason=reason,
            attempt=attempt,
            wait_time=wait_time,
        )
        await asyncio.sleep(wait_time)

    async def get_event(self, event_id: int, use_cache: bool = True) -> dict[str, Any]:
        """
        Fetch an event document.

        Args:
            event_id: Provider numeric event id
            use_cache: False forces a network fetch (the fresh document is
                still cached for subsequent reads)

        Returns:
            Event document including its ``d_cats`` list
        """
        data = await self._request(f"/api/v1/events/{event_id}/", use_cache=use_cache)
        if not isinstance(data, dict):
            raise ProviderAPIError(
                f"Unexpected event document for {event_id}",
                ProviderErrorType.PARSE_ERROR,
            )
        return data

    async def get_category_results(self, results_url: str) -> dict[str, Any] | None:
        """
        Fetch a category full-results document.

        Args:
            results_url: The category's ``full_results_url`` (relative)

        Returns:
            Result document, or None if the provider returned an empty body
        """
        data = await self._request(results_url, use_cache=False)
        if not data:
            return None
        if not isinstance(data, dict):
            raise ProviderAPIError(
                f"Unexpected result document at {results_url}",
                ProviderErrorType.PARSE_ERROR,
            )
        return data

    async def health_check(self, event_id: int = 1) -> bool:
        """
        Check if the provider is reachable.

        A 404 still proves the service answers.
        """
        try:
            await self._request(f"/api/v1/events/{event_id}/", use_cache=False)
            return True
        except ProviderAPIError as e:
            if e.error_type == ProviderErrorType.NOT_FOUND:
                return True
            logger.error("provider_health_check_failed", error=str(e))
            return False
