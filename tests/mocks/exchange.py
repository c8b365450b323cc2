"""
Stub REST client for collector tests.

Routes `get_json` calls by endpoint path to canned payloads, so
collectors can be exercised without network access.
"""

from collections.abc import Callable, Mapping
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from arbcollect.exchange.client import RestClient


# A route value is a payload, an exception to raise, or a callable
# taking (path, params) and returning either.
Route = Any


def make_stub_client(routes: Mapping[str, Route]) -> MagicMock:
    """
    Build a RestClient double.

    Paths are matched exactly first, then by longest prefix, so
    "/trading/orderbook" also answers "/trading/orderbook/BTC-PLN".

    Args:
        routes: Endpoint path -> response.

    Returns:
        MagicMock with async `get_json` and `close`.
    """
    client = MagicMock(spec=RestClient)

    def resolve(path: str) -> Route:
        if path in routes:
            return routes[path]
        matches = [p for p in routes if path.startswith(p)]
        if not matches:
            raise AssertionError(f"Unexpected request to {path}")
        return routes[max(matches, key=len)]

    async def get_json(path: str, params: Mapping[str, Any] | None = None, weight: int = 1) -> Any:
        response = resolve(path)
        if callable(response) and not isinstance(response, BaseException):
            response = response(path, dict(params or {}))
        if isinstance(response, BaseException):
            raise response
        return response

    client.get_json = AsyncMock(side_effect=get_json)
    client.close = AsyncMock()
    return client


def by_param(name: str, responses: Mapping[str, Route], default: Route = None) -> Callable[[str, dict[str, Any]], Route]:
    """Route on one query parameter value."""

    def route(path: str, params: dict[str, Any]) -> Route:
        return responses.get(str(params.get(name)), default)

    return route


def by_suffix(responses: Mapping[str, Route]) -> Callable[[str, dict[str, Any]], Route]:
    """Route on the last path segment (e.g. Zonda market codes)."""

    def route(path: str, params: dict[str, Any]) -> Route:
        market = path.rsplit("/", 1)[-1]
        if market not in responses:
            return {"status": "Fail", "errors": ["MARKET_NOT_RECOGNIZED"]}
        return responses[market]

    return route
