"""
Bybit collector.

Uses the V5 public market endpoints with category=spot. Bybit reports
errors inside an HTTP 200 envelope (retCode != 0) and geo-blocks some
regions with 403, in which case the client moves on to the next
fallback domain.
"""

import asyncio
import logging
from typing import Any

from arbcollect.collectors.timeseries import collect_series
from arbcollect.config.constants import (
    BYBIT,
    BYBIT_CATEGORY,
    BYBIT_FALLBACK_URLS,
    BYBIT_INSTRUMENTS,
    BYBIT_ORDERBOOK,
    BYBIT_REST_URL,
    BYBIT_TICKERS,
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
    BybitEnvelope,
    BybitInstrument,
    BybitOrderbook,
    BybitTicker,
    parse_book_levels,
    parse_model,
)
from arbcollect.exchange.rate_limiter import RateLimiter
from arbcollect.exchange.symbols import SymbolMapper
from arbcollect.utils.time import from_ms, utc_now


logger = logging.getLogger(__name__)

# Spot order book endpoint accepts 1..200
MAX_DEPTH = 200


class BybitCollector:
    """Collector for Bybit spot markets."""

    name = BYBIT

    def __init__(
        self,
        client: RestClient | None = None,
        pacing_delay_ms: int = DEFAULT_PACING_DELAY_MS,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._pacing_delay_s = pacing_delay_ms / 1000
        self._timeout_s = timeout_s
        self._symbols = SymbolMapper(BYBIT)

    @property
    def symbols(self) -> SymbolMapper:
        """Pair table loaded from instruments-info."""
        return self._symbols

    async def initialize(self, config: ExchangeConfig) -> None:
        """
        Validate credentials and load spot instruments.

        Raises:
            ConfigurationError: If the API key or secret is missing.
            InitializationError: If the instrument list cannot be loaded.
        """
        if not config.api_key or not config.secret_key:
            raise ConfigurationError("Bybit API key and secret key are required", exchange=BYBIT)

        if self._client is None:
            self._client = RestClient(
                BYBIT,
                BYBIT_REST_URL,
                headers={"X-BAPI-API-KEY": config.api_key},
                rate_limiter=RateLimiter(EXCHANGE_REQUESTS_PER_SECOND[BYBIT]),
                timeout_s=self._timeout_s,
                fallback_urls=BYBIT_FALLBACK_URLS,
            )

        try:
            result = await self._get(BYBIT_INSTRUMENTS, {"category": BYBIT_CATEGORY})
            instruments = [parse_model(BybitInstrument, item, BYBIT) for item in result.get("list", [])]
        except CollectorError as e:
            raise InitializationError(f"Failed to load Bybit instruments: {e}", exchange=BYBIT) from e

        self._symbols.clear()
        for instrument in instruments:
            if instrument.status == "Trading":
                self._symbols.add_pair(instrument.base_coin, instrument.quote_coin, instrument.symbol)

        logger.info(f"Bybit: loaded {len(self._symbols)} spot instruments")

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET and unwrap the V5 envelope."""
        if self._client is None:
            raise InitializationError("Bybit collector is not initialized", exchange=BYBIT)

        data = await self._client.get_json(path, params)
        envelope = parse_model(BybitEnvelope, data, BYBIT)

        if envelope.is_error:
            raise ExchangeAPIError(
                f"Bybit API error {envelope.ret_code}: {envelope.ret_msg}",
                exchange=BYBIT,
                code=envelope.ret_code,
            )

        return envelope.result

    async def _ticker(self, pair: str) -> BybitTicker:
        result = await self._get(BYBIT_TICKERS, {"category": BYBIT_CATEGORY, "symbol": pair})
        items = result.get("list") or []
        if not items:
            raise DataUnavailableError(f"No Bybit ticker for {pair}", exchange=BYBIT)
        return parse_model(BybitTicker, items[0], BYBIT)

    async def _orderbook(self, pair: str, limit: int) -> BybitOrderbook:
        result = await self._get(
            BYBIT_ORDERBOOK,
            {"category": BYBIT_CATEGORY, "symbol": pair, "limit": min(limit, MAX_DEPTH)},
        )
        if not result:
            raise DataUnavailableError(f"No Bybit order book for {pair}", exchange=BYBIT)
        return parse_model(BybitOrderbook, result, BYBIT)

    async def fetch_price(self, symbol: str, quote: str) -> PriceSnapshot:
        """
        Fetch last price and 24h volume from the ticker, top of book from
        the order book.

        Raises:
            DataUnavailableError: If either side of the book is empty.
        """
        pair = self._symbols.resolve(symbol, quote)
        ticker, book = await asyncio.gather(self._ticker(pair), self._orderbook(pair, 1))

        if not book.bids or not book.asks:
            raise DataUnavailableError(f"Empty Bybit order book for {pair}", exchange=BYBIT)

        bid = parse_book_levels(book.bids, 1, BYBIT)[0][0]
        ask = parse_book_levels(book.asks, 1, BYBIT)[0][0]

        return PriceSnapshot(
            price=ticker.last_price,
            volume24h=ticker.volume24h,
            bid=bid,
            ask=ask,
            timestamp=utc_now(),
        )

    async def fetch_prices(self, symbols: list[str], quote: str) -> dict[str, PriceSnapshot]:
        """
        Fetch quotes for many symbols from one bulk tickers request.

        The bulk ticker carries top of book, so no order book requests
        are needed. Symbols missing from the response are skipped.
        """
        try:
            result = await self._get(BYBIT_TICKERS, {"category": BYBIT_CATEGORY})
            tickers = {t.symbol: t for t in (parse_model(BybitTicker, d, BYBIT) for d in result.get("list", []))}
        except CollectorError as e:
            logger.error(f"Bybit: bulk ticker request failed: {e}")
            return {}

        now = utc_now()
        snapshots: dict[str, PriceSnapshot] = {}
        for symbol in symbols:
            pair = self._symbols.resolve(symbol, quote)
            ticker = tickers.get(pair)
            if ticker is None or ticker.bid1_price is None or ticker.ask1_price is None:
                logger.warning(f"Bybit: no ticker data for {pair}")
                continue
            snapshots[symbol] = PriceSnapshot(
                price=ticker.last_price,
                volume24h=ticker.volume24h,
                bid=ticker.bid1_price,
                ask=ticker.ask1_price,
                timestamp=now,
            )

        return snapshots

    async def fetch_order_book(self, symbol: str, quote: str, depth: int) -> OrderBookSnapshot:
        """
        Fetch the order book truncated to `depth` levels per side.

        The update id is Bybit's `u`, or the book timestamp when absent.
        """
        pair = self._symbols.resolve(symbol, quote)
        book = await self._orderbook(pair, depth)

        update_id = book.update_id if book.update_id is not None else book.ts

        return OrderBookSnapshot(
            last_update_id=str(update_id),
            timestamp=from_ms(book.ts),
            bids=parse_book_levels(book.bids, depth, BYBIT),
            asks=parse_book_levels(book.asks, depth, BYBIT),
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
