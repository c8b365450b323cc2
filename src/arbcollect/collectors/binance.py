"""
Binance collector.

Uses the Binance.US public REST API. Pairs are identified by the
concatenated symbol (e.g. BTCUSDT) listed in exchangeInfo.
"""

import asyncio
import logging
from typing import Any

from arbcollect.collectors.timeseries import collect_series
from arbcollect.config.constants import (
    BINANCE,
    BINANCE_BOOK_TICKER,
    BINANCE_DEPTH,
    BINANCE_EXCHANGE_INFO,
    BINANCE_REST_URL,
    BINANCE_TICKER_24HR,
    BINANCE_TICKER_PRICE,
    DEFAULT_PACING_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    EXCHANGE_REQUESTS_PER_SECOND,
)
from arbcollect.core.errors import (
    CollectorError,
    ConfigurationError,
    DataUnavailableError,
    ExchangeAPIError,
    InitializationError,
)
from arbcollect.core.types import (
    ExchangeConfig,
    OrderBookSnapshot,
    PriceSnapshot,
    TimeSeriesOptions,
)
from arbcollect.exchange.client import RestClient
from arbcollect.exchange.models import (
    Binance24hrTicker,
    BinanceBookTicker,
    BinanceDepth,
    BinanceExchangeInfo,
    BinancePriceTicker,
    parse_book_levels,
    parse_model,
)
from arbcollect.exchange.rate_limiter import RateLimiter
from arbcollect.exchange.symbols import SymbolMapper
from arbcollect.utils.time import utc_now


logger = logging.getLogger(__name__)

# Binance error code for an unknown symbol
INVALID_SYMBOL_CODE = -1121

# Limits accepted by the depth endpoint
DEPTH_LIMITS = (5, 10, 20, 50, 100, 500, 1000, 5000)


def _depth_limit(depth: int) -> int:
    """Smallest accepted depth limit covering `depth` levels."""
    for limit in DEPTH_LIMITS:
        if limit >= depth:
            return limit
    return DEPTH_LIMITS[-1]


class BinanceCollector:
    """
    Collector for Binance.

    Requests are rate limited by request weight, mirroring Binance's own
    accounting (exchangeInfo is heavier than single-symbol tickers).
    """

    name = BINANCE

    def __init__(
        self,
        client: RestClient | None = None,
        pacing_delay_ms: int = DEFAULT_PACING_DELAY_MS,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        """
        Initialize the collector.

        Args:
            client: Preconfigured REST client; created during initialize if None.
            pacing_delay_ms: Delay between time-series samples.
            timeout_s: Request timeout when creating the client.
        """
        self._client = client
        self._pacing_delay_s = pacing_delay_ms / 1000
        self._timeout_s = timeout_s
        self._symbols = SymbolMapper(BINANCE)

    @property
    def symbols(self) -> SymbolMapper:
        """Pair table loaded from exchangeInfo."""
        return self._symbols

    async def initialize(self, config: ExchangeConfig) -> None:
        """
        Validate credentials and load trading symbols.

        Raises:
            ConfigurationError: If the API key or secret is missing.
            InitializationError: If exchangeInfo cannot be loaded.
        """
        if not config.api_key or not config.secret_key:
            raise ConfigurationError("Binance API key and secret key are required", exchange=BINANCE)

        if self._client is None:
            self._client = RestClient(
                BINANCE,
                BINANCE_REST_URL,
                headers={"X-MBX-APIKEY": config.api_key},
                rate_limiter=RateLimiter(EXCHANGE_REQUESTS_PER_SECOND[BINANCE]),
                timeout_s=self._timeout_s,
            )

        try:
            data = await self._client.get_json(BINANCE_EXCHANGE_INFO, weight=10)
            info = parse_model(BinanceExchangeInfo, data, BINANCE)
        except CollectorError as e:
            raise InitializationError(f"Failed to load Binance exchange info: {e}", exchange=BINANCE) from e

        self._symbols.clear()
        for entry in info.symbols:
            if entry.status == "TRADING":
                self._symbols.add_pair(entry.base_asset, entry.quote_asset, entry.symbol)

        logger.info(f"Binance: loaded {len(self._symbols)} trading symbols")

    def _require_client(self) -> RestClient:
        if self._client is None:
            raise InitializationError("Binance collector is not initialized", exchange=BINANCE)
        return self._client

    async def _get(self, path: str, params: dict[str, Any], weight: int = 1) -> Any:
        """GET that reports unknown symbols as missing data."""
        try:
            return await self._require_client().get_json(path, params, weight=weight)
        except ExchangeAPIError as e:
            if e.code == INVALID_SYMBOL_CODE:
                raise DataUnavailableError(
                    f"Binance has no symbol {params.get('symbol')}", exchange=BINANCE
                ) from e
            raise

    async def fetch_price(self, symbol: str, quote: str) -> PriceSnapshot:
        """
        Fetch last price, 24h volume and top of book.

        Args:
            symbol: Canonical base symbol.
            quote: Canonical quote symbol.

        Returns:
            Current price snapshot.
        """
        pair = self._symbols.resolve(symbol, quote)
        params = {"symbol": pair}

        price_data, stats_data, book_data = await asyncio.gather(
            self._get(BINANCE_TICKER_PRICE, params),
            self._get(BINANCE_TICKER_24HR, params),
            self._get(BINANCE_BOOK_TICKER, params),
        )

        price = parse_model(BinancePriceTicker, price_data, BINANCE)
        stats = parse_model(Binance24hrTicker, stats_data, BINANCE)
        book = parse_model(BinanceBookTicker, book_data, BINANCE)

        return PriceSnapshot(
            price=price.price,
            volume24h=stats.volume,
            bid=book.bid_price,
            ask=book.ask_price,
            timestamp=utc_now(),
        )

    async def fetch_prices(self, symbols: list[str], quote: str) -> dict[str, PriceSnapshot]:
        """
        Fetch quotes for many symbols with bulk ticker requests.

        Symbols absent from any of the bulk responses are logged and
        left out of the result.
        """
        client = self._require_client()
        wanted = {symbol: self._symbols.resolve(symbol, quote) for symbol in symbols}

        try:
            prices_data, stats_data, books_data = await asyncio.gather(
                client.get_json(BINANCE_TICKER_PRICE, weight=4),
                client.get_json(BINANCE_TICKER_24HR, weight=80),
                client.get_json(BINANCE_BOOK_TICKER, weight=4),
            )
            prices = {p.symbol: p for p in (parse_model(BinancePriceTicker, d, BINANCE) for d in prices_data)}
            stats = {s.symbol: s for s in (parse_model(Binance24hrTicker, d, BINANCE) for d in stats_data)}
            books = {b.symbol: b for b in (parse_model(BinanceBookTicker, d, BINANCE) for d in books_data)}
        except CollectorError as e:
            logger.error(f"Binance: bulk ticker request failed: {e}")
            return {}

        now = utc_now()
        result: dict[str, PriceSnapshot] = {}
        for symbol, pair in wanted.items():
            if pair not in prices or pair not in stats or pair not in books:
                logger.warning(f"Binance: no ticker data for {pair}")
                continue
            result[symbol] = PriceSnapshot(
                price=prices[pair].price,
                volume24h=stats[pair].volume,
                bid=books[pair].bid_price,
                ask=books[pair].ask_price,
                timestamp=now,
            )

        return result

    async def fetch_order_book(self, symbol: str, quote: str, depth: int) -> OrderBookSnapshot:
        """
        Fetch the order book truncated to `depth` levels per side.

        Args:
            symbol: Canonical base symbol.
            quote: Canonical quote symbol.
            depth: Levels per side.

        Returns:
            Current order book snapshot.
        """
        pair = self._symbols.resolve(symbol, quote)
        data = await self._get(BINANCE_DEPTH, {"symbol": pair, "limit": _depth_limit(depth)}, weight=5)
        book = parse_model(BinanceDepth, data, BINANCE)

        return OrderBookSnapshot(
            last_update_id=str(book.last_update_id),
            timestamp=utc_now(),
            bids=parse_book_levels(book.bids, depth, BINANCE),
            asks=parse_book_levels(book.asks, depth, BINANCE),
        )

    async def fetch_price_time_series(
        self, symbol: str, quote: str, options: TimeSeriesOptions
    ) -> list[PriceSnapshot]:
        """Sample quotes once per grid point."""
        return await collect_series(
            lambda: self.fetch_price(symbol, quote), options, self._pacing_delay_s
        )

    async def fetch_order_book_time_series(
        self, symbol: str, quote: str, depth: int, options: TimeSeriesOptions
    ) -> list[OrderBookSnapshot]:
        """Sample order books once per grid point."""
        return await collect_series(
            lambda: self.fetch_order_book(symbol, quote, depth), options, self._pacing_delay_s
        )

    async def cleanup(self) -> None:
        """Close the HTTP session."""
        if self._client is not None:
            await self._client.close()
