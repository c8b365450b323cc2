"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from arbcollect.core.types import ExchangeConfig, Market, MarketPair, TimeSeriesOptions


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def credentials() -> ExchangeConfig:
    """Complete credentials, including a passphrase."""
    return ExchangeConfig(api_key="key", secret_key="secret", passphrase="phrase")


@pytest.fixture
def no_credentials() -> ExchangeConfig:
    """Empty credentials."""
    return ExchangeConfig()


# =============================================================================
# Time Fixtures
# =============================================================================


@pytest.fixture
def window_end() -> datetime:
    """Fixed end of the collection window."""
    return datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def five_minute_window(window_end: datetime) -> TimeSeriesOptions:
    """Default five-minute lookback at one-minute spacing (6 samples)."""
    return TimeSeriesOptions(
        start_time=datetime(2024, 1, 1, 11, 55, tzinfo=UTC),
        end_time=window_end,
        interval_ms=60_000,
    )


@pytest.fixture
def single_point_window(window_end: datetime) -> TimeSeriesOptions:
    """Window with start == end (1 sample)."""
    return TimeSeriesOptions(start_time=window_end, end_time=window_end, interval_ms=60_000)


# =============================================================================
# Market Fixtures
# =============================================================================


@pytest.fixture
def markets() -> dict[str, Market]:
    """Markets table keyed by name."""
    return {
        "Binance": Market(id=1, name="Binance"),
        "Kraken": Market(id=2, name="Kraken"),
        "OKX": Market(id=3, name="OKX"),
        "Delisted": Market(id=4, name="Delisted", is_active=False),
    }


@pytest.fixture
def make_pair(markets: dict[str, Market]) -> Callable[..., MarketPair]:
    """Factory for market pairs on the fixture markets."""
    counter = iter(range(100, 1000))

    def _make(
        market: str,
        base: str = "BTC",
        quote: str = "USDT",
        is_active: bool = True,
        pair_id: int | None = None,
    ) -> MarketPair:
        m = markets[market]
        return MarketPair(
            id=pair_id if pair_id is not None else next(counter),
            market_id=m.id,
            coin_id=1,
            base_currency=base,
            quote_currency=quote,
            is_active=is_active,
            market=m,
        )

    return _make


# =============================================================================
# Exchange Payload Fixtures
# =============================================================================


@pytest.fixture
def binance_exchange_info() -> dict:
    """Binance exchangeInfo with one halted symbol."""
    return {
        "timezone": "UTC",
        "serverTime": 1704067200000,
        "symbols": [
            {"symbol": "BTCUSDT", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "USDT"},
            {"symbol": "ETHUSDT", "status": "TRADING", "baseAsset": "ETH", "quoteAsset": "USDT"},
            {"symbol": "LUNAUSDT", "status": "BREAK", "baseAsset": "LUNA", "quoteAsset": "USDT"},
        ],
    }


@pytest.fixture
def kraken_asset_pairs() -> dict:
    """Kraken AssetPairs envelope."""
    return {
        "error": [],
        "result": {
            "XXBTZUSD": {"altname": "XBTUSD", "wsname": "XBT/USD", "base": "XXBT", "quote": "ZUSD"},
            "XETHZUSD": {"altname": "ETHUSD", "wsname": "ETH/USD", "base": "XETH", "quote": "ZUSD"},
            "XDGUSD": {"altname": "XDGUSD", "wsname": "XDG/USD", "base": "XXDG", "quote": "ZUSD"},
            "XBTUSDT": {"altname": "XBTUSDT", "wsname": "XBT/USDT", "base": "XXBT", "quote": "USDT"},
        },
    }


@pytest.fixture
def okx_instruments() -> dict:
    """OKX spot instruments envelope."""
    return {
        "code": "0",
        "msg": "",
        "data": [
            {"instId": "BTC-USDT", "baseCcy": "BTC", "quoteCcy": "USDT", "state": "live"},
            {"instId": "ETH-USDT", "baseCcy": "ETH", "quoteCcy": "USDT", "state": "live"},
        ],
    }


@pytest.fixture
def bybit_instruments() -> dict:
    """Bybit spot instruments envelope."""
    return {
        "retCode": 0,
        "retMsg": "OK",
        "result": {
            "category": "spot",
            "list": [
                {"symbol": "BTCUSDT", "baseCoin": "BTC", "quoteCoin": "USDT", "status": "Trading"},
                {"symbol": "ETHUSDT", "baseCoin": "ETH", "quoteCoin": "USDT", "status": "Trading"},
            ],
        },
    }


@pytest.fixture
def zonda_stats() -> dict:
    """Zonda trading stats for three markets."""
    return {
        "status": "Ok",
        "items": {
            "BTC-PLN": {"m": "BTC-PLN", "v": "10", "r24h": "200000", "h": "201000", "l": "199000"},
            "ETH-USDT": {"m": "ETH-USDT", "v": "50", "r24h": "3000", "h": "3050", "l": "2950"},
            "USDT-PLN": {"m": "USDT-PLN", "v": "100000", "r24h": "4.0", "h": "4.1", "l": "3.9"},
        },
    }
