"""
Async REST client shared by all exchange collectors.

Features:
- Single session with connection pooling and keep-alive
- Fast JSON parsing with orjson
- Integrated per-exchange rate limiting
- Sticky fallback to alternative base URLs when an endpoint is blocked
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import orjson

from arbcollect.config.constants import DEFAULT_REQUEST_TIMEOUT_S
from arbcollect.core.errors import ExchangeAPIError, NetworkError
from arbcollect.exchange.rate_limiter import RateLimiter


logger = logging.getLogger(__name__)


class RestClient:
    """
    Async REST/JSON client for one exchange.

    HTTP errors are normalized to ExchangeAPIError, transport failures and
    unparseable bodies to NetworkError. Exchange-specific error payloads
    returned with HTTP 200 are checked by the collectors.
    """

    def __init__(
        self,
        exchange: str,
        base_url: str,
        headers: Mapping[str, str] | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        fallback_urls: tuple[str, ...] = (),
        fallback_statuses: frozenset[int] = frozenset({403}),
    ) -> None:
        """
        Initialize the client.

        Args:
            exchange: Exchange name used in errors and logs.
            base_url: Base URL without trailing slash.
            headers: Default headers sent with every request.
            rate_limiter: Optional rate limiter instance.
            timeout_s: Total timeout per request.
            fallback_urls: Alternative base URLs tried in order.
            fallback_statuses: HTTP statuses that trigger a fallback.
        """
        self._exchange = exchange
        self._base_urls = [base_url] + [u for u in fallback_urls if u != base_url]
        self._url_index = 0
        self._headers = dict(headers or {})
        self._rate_limiter = rate_limiter or RateLimiter()
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._fallback_statuses = fallback_statuses
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        """Base URL currently in use."""
        return self._base_urls[self._url_index]

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"Accept": "application/json", **self._headers},
                timeout=self._timeout,
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    @asynccontextmanager
    async def _request_context(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Context manager for making requests."""
        session = await self._get_session()
        try:
            yield session
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error: {e}", exchange=self._exchange) from e
        except TimeoutError as e:
            raise NetworkError("Request timed out", exchange=self._exchange) from e

    async def get_json(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        weight: int = 1,
    ) -> Any:
        """
        Make a GET request and return the parsed JSON body.

        Falls over to the next base URL when the current one answers with
        a fallback status or refuses the connection; the working URL is
        kept for subsequent requests.

        Args:
            path: Endpoint path, appended to the base URL.
            params: Query parameters.
            weight: Request weight for rate limiting.

        Returns:
            Parsed JSON response.

        Raises:
            ExchangeAPIError: On HTTP error status.
            NetworkError: On network errors or invalid JSON.
        """
        query = {k: str(v) for k, v in (params or {}).items()}

        while True:
            await self._rate_limiter.acquire(weight)
            url = f"{self.base_url}{path}"

            try:
                async with self._request_context() as session:
                    async with session.get(url, params=query) as response:
                        return await self._handle_response(response)
            except ExchangeAPIError as e:
                if e.status not in self._fallback_statuses or not self._advance():
                    raise
            except NetworkError as e:
                if not isinstance(e.__cause__, aiohttp.ClientConnectorError) or not self._advance():
                    raise

    def _advance(self) -> bool:
        """Switch to the next fallback URL; False when none remain."""
        if self._url_index + 1 >= len(self._base_urls):
            return False

        blocked = self.base_url
        self._url_index += 1
        logger.warning(f"{self._exchange}: {blocked} unavailable, switching to {self.base_url}")
        return True

    async def _handle_response(self, response: aiohttp.ClientResponse) -> Any:
        """Parse and validate response."""
        text = await response.text()

        if response.status >= 400:
            code: int | str = response.status
            message = text
            try:
                data = orjson.loads(text)
            except orjson.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                code = data.get("code", code)
                message = data.get("msg") or data.get("message") or text
            raise ExchangeAPIError(
                f"{self._exchange} API error {code}: {message}",
                exchange=self._exchange,
                code=code,
                status=response.status,
            )

        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise NetworkError(
                f"Invalid JSON response: {e}", exchange=self._exchange
            ) from e

    async def __aenter__(self) -> "RestClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
