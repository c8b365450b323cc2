"""
Zonda collector.

Zonda needs no credentials. Its deepest markets are quoted in PLN, so
the PLN market is preferred and prices are converted to USD with a
PLN/USD rate derived from Zonda's own books and refreshed hourly.
"""

import asyncio
import logging
from typing import Any

from arbcollect.collectors.batch import fetch_each
from arbcollect.collectors.timeseries import collect_series
from arbcollect.config.constants import (
    DEFAULT_PACING_DELAY_MS,
    DEFAULT_PLN_USD_RATE,
    DEFAULT_REQUEST_TIMEOUT_S,
    EXCHANGE_REQUESTS_PER_SECOND,
    PLN_RATE_REFRESH_MS,
    USD_EQUIVALENTS,
    ZONDA,
    ZONDA_ALTERNATIVE_URLS,
    ZONDA_ORDERBOOK,
    ZONDA_QUOTE_PREFERENCE,
    ZONDA_REST_URL,
    ZONDA_STATS,
)
from arbcollect.core.errors import (
    CollectorError,
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
    ZondaLevel,
    ZondaOrderBook,
    ZondaStats,
    parse_model,
)
from arbcollect.exchange.rate_limiter import RateLimiter
from arbcollect.exchange.symbols import SymbolMapper
from arbcollect.utils.math import safe_divide
from arbcollect.utils.time import from_ms, get_timestamp_ms, utc_now


logger = logging.getLogger(__name__)

PLN = "PLN"


class ZondaCollector:
    """
    Collector for Zonda (formerly BitBay).

    Pair preference for a canonical SYMBOL/QUOTE: SYMBOL-PLN, then
    SYMBOL-QUOTE, then the USD-like quotes in order. Values from a PLN
    market are converted to USD; USD-like quotes are passed through.
    """

    name = ZONDA

    def __init__(
        self,
        client: RestClient | None = None,
        pacing_delay_ms: int = DEFAULT_PACING_DELAY_MS,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._pacing_delay_s = pacing_delay_ms / 1000
        self._timeout_s = timeout_s
        self._symbols = SymbolMapper(ZONDA, separator="-")
        self._pln_usd_rate = DEFAULT_PLN_USD_RATE
        self._rate_updated_ms = 0

    @property
    def symbols(self) -> SymbolMapper:
        """Market table loaded from trading stats."""
        return self._symbols

    @property
    def pln_usd_rate(self) -> float:
        """USD value of one PLN."""
        return self._pln_usd_rate

    async def initialize(self, config: ExchangeConfig) -> None:
        """
        Load available markets and the PLN/USD rate.

        Credentials are ignored. A failed rate refresh keeps the default
        rate and does not fail initialization.

        Raises:
            InitializationError: If the market list cannot be loaded.
        """
        if self._client is None:
            self._client = RestClient(
                ZONDA,
                ZONDA_REST_URL,
                rate_limiter=RateLimiter(EXCHANGE_REQUESTS_PER_SECOND[ZONDA]),
                timeout_s=self._timeout_s,
                fallback_urls=ZONDA_ALTERNATIVE_URLS,
                fallback_statuses=frozenset({403, 404}),
            )

        try:
            stats = await self._stats()
        except CollectorError as e:
            raise InitializationError(f"Failed to load Zonda markets: {e}", exchange=ZONDA) from e

        self._symbols.clear()
        for market in stats.items:
            if "-" in market:
                base, quote = market.split("-", 1)
                self._symbols.add_pair(base, quote, market)

        logger.info(f"Zonda: loaded {len(self._symbols)} markets")

        await self._refresh_pln_rate(force=True)

    # =========================================================================
    # Requests
    # =========================================================================

    async def _get(self, path: str) -> Any:
        if self._client is None:
            raise InitializationError("Zonda collector is not initialized", exchange=ZONDA)
        return await self._client.get_json(path)

    async def _stats(self) -> ZondaStats:
        stats = parse_model(ZondaStats, await self._get(ZONDA_STATS), ZONDA)
        if stats.is_error:
            raise ExchangeAPIError(f"Zonda stats request failed: {stats.status}", exchange=ZONDA)
        return stats

    async def _order_book(self, market: str) -> ZondaOrderBook:
        book = parse_model(ZondaOrderBook, await self._get(f"{ZONDA_ORDERBOOK}/{market}"), ZONDA)
        if book.is_error:
            raise ExchangeAPIError(f"Zonda order book request failed for {market}", exchange=ZONDA)
        return book

    # =========================================================================
    # Conversion
    # =========================================================================

    async def _refresh_pln_rate(self, force: bool = False) -> None:
        """
        Refresh the PLN/USD rate when it is older than an hour.

        Uses the best USDT-PLN ask, or the BTC-USD / BTC-PLN cross when
        that market is empty. Failures keep the current rate.
        """
        now = get_timestamp_ms()
        if not force and now - self._rate_updated_ms < PLN_RATE_REFRESH_MS:
            return

        try:
            rate = await self._rate_from_usdt()
            if rate is None:
                rate = await self._rate_from_btc_cross()
        except CollectorError as e:
            logger.warning(f"Zonda: PLN/USD rate refresh failed, keeping {self._pln_usd_rate}: {e}")
            return

        if rate is None:
            logger.warning(f"Zonda: no PLN/USD rate available, keeping {self._pln_usd_rate}")
            return

        self._pln_usd_rate = rate
        self._rate_updated_ms = now
        logger.info(f"Zonda: PLN/USD rate updated to {rate:.4f}")

    async def _rate_from_usdt(self) -> float | None:
        book = await self._order_book("USDT-PLN")
        if not book.sell or book.sell[0].ra <= 0:
            return None
        return 1 / book.sell[0].ra

    async def _rate_from_btc_cross(self) -> float | None:
        btc_pln, btc_usd = await asyncio.gather(
            self._order_book("BTC-PLN"), self._order_book("BTC-USD")
        )
        if not btc_pln.sell or not btc_usd.sell:
            return None
        rate = safe_divide(btc_usd.sell[0].ra, btc_pln.sell[0].ra)
        return rate if rate > 0 else None

    def to_usd(self, value: float, quote: str) -> float:
        """
        Convert a value quoted in `quote` to USD.

        Unknown quotes are passed through unchanged with a warning.
        """
        quote = quote.upper()
        if quote in USD_EQUIVALENTS:
            return value
        if quote == PLN:
            return value * self._pln_usd_rate
        logger.warning(f"Zonda: no USD conversion for {quote}, using raw value")
        return value

    # =========================================================================
    # Market Data
    # =========================================================================

    def resolve_market(self, symbol: str, quote: str) -> str:
        """
        Pick the Zonda market for a canonical pair.

        Raises:
            DataUnavailableError: If no preferred market is listed.
        """
        for candidate in (PLN, quote, *ZONDA_QUOTE_PREFERENCE):
            market = self._symbols.lookup(symbol, candidate)
            if market is not None:
                return market

        raise DataUnavailableError(f"No Zonda market for {symbol}/{quote}", exchange=ZONDA)

    def _levels(self, levels: list[ZondaLevel], depth: int, quote: str) -> tuple[tuple[float, float], ...]:
        return tuple((self.to_usd(level.ra, quote), level.ca) for level in levels[:depth])

    async def fetch_price(self, symbol: str, quote: str) -> PriceSnapshot:
        """
        Fetch last rate, volume and top of book, converted to USD.

        Volume is reported as quote notional (base volume * price).
        """
        await self._refresh_pln_rate()

        market = self.resolve_market(symbol, quote)
        market_quote = market.split("-", 1)[1]

        stats, book = await asyncio.gather(self._stats(), self._order_book(market))

        item = stats.items.get(market)
        if item is None or item.r24h is None:
            raise DataUnavailableError(f"Zonda market {market} missing from stats", exchange=ZONDA)
        if not book.buy or not book.sell:
            raise DataUnavailableError(f"Empty Zonda order book for {market}", exchange=ZONDA)

        price = item.r24h
        volume = item.v or 0.0

        return PriceSnapshot(
            price=self.to_usd(price, market_quote),
            volume24h=self.to_usd(volume * price, market_quote),
            bid=self.to_usd(book.buy[0].ra, market_quote),
            ask=self.to_usd(book.sell[0].ra, market_quote),
            timestamp=utc_now(),
        )

    async def fetch_prices(self, symbols: list[str], quote: str) -> dict[str, PriceSnapshot]:
        """Fetch quotes one symbol at a time, skipping failures."""
        return await fetch_each(self.fetch_price, symbols, quote, ZONDA)

    async def fetch_order_book(self, symbol: str, quote: str, depth: int) -> OrderBookSnapshot:
        """
        Fetch the order book truncated to `depth` levels per side.

        Level prices are converted to USD; quantities stay in base units.
        """
        await self._refresh_pln_rate()

        market = self.resolve_market(symbol, quote)
        market_quote = market.split("-", 1)[1]
        book = await self._order_book(market)

        if book.seq_no is not None:
            update_id = str(book.seq_no)
        else:
            update_id = str(book.timestamp or get_timestamp_ms())

        return OrderBookSnapshot(
            last_update_id=update_id,
            timestamp=from_ms(book.timestamp) if book.timestamp else utc_now(),
            bids=self._levels(book.buy, depth, market_quote),
            asks=self._levels(book.sell, depth, market_quote),
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
