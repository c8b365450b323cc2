"""
OKX collector.

Native pair ids are dash-separated (BTC-USDT). All endpoints used are
public; the passphrase is still required so that a misconfigured
deployment fails at startup rather than later.
"""

import asyncio
import logging
from typing import Any

from arbcollect.collectors.batch import fetch_each
from arbcollect.collectors.timeseries import collect_series
from arbcollect.config.constants import (
    DEFAULT_PACING_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    EXCHANGE_REQUESTS_PER_SECOND,
    OKX,
    OKX_BOOKS,
    OKX_INST_TYPE,
    OKX_INSTRUMENTS,
    OKX_REST_URL,
    OKX_TICKER,
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
    OkxBook,
    OkxEnvelope,
    OkxInstrument,
    OkxTicker,
    parse_book_levels,
    parse_model,
)
from arbcollect.exchange.rate_limiter import RateLimiter
from arbcollect.exchange.symbols import SymbolMapper
from arbcollect.utils.math import mid_price
from arbcollect.utils.time import from_ms


logger = logging.getLogger(__name__)

# Books endpoint accepts sz up to 400
MAX_DEPTH = 400


class OkxCollector:
    """Collector for OKX spot markets."""

    name = OKX

    def __init__(
        self,
        client: RestClient | None = None,
        pacing_delay_ms: int = DEFAULT_PACING_DELAY_MS,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._pacing_delay_s = pacing_delay_ms / 1000
        self._timeout_s = timeout_s
        self._symbols = SymbolMapper(OKX, separator="-")

    @property
    def symbols(self) -> SymbolMapper:
        """Pair table loaded from public instruments."""
        return self._symbols

    async def initialize(self, config: ExchangeConfig) -> None:
        """
        Validate credentials and load spot instruments.

        Raises:
            ConfigurationError: If the API key, secret or passphrase is missing.
            InitializationError: If the instrument list cannot be loaded.
        """
        if not config.api_key or not config.secret_key or not config.passphrase:
            raise ConfigurationError(
                "OKX API key, secret key and passphrase are required", exchange=OKX
            )

        if self._client is None:
            self._client = RestClient(
                OKX,
                OKX_REST_URL,
                rate_limiter=RateLimiter(EXCHANGE_REQUESTS_PER_SECOND[OKX]),
                timeout_s=self._timeout_s,
            )

        try:
            data = await self._get(OKX_INSTRUMENTS, {"instType": OKX_INST_TYPE})
            instruments = [parse_model(OkxInstrument, item, OKX) for item in data]
        except CollectorError as e:
            raise InitializationError(f"Failed to load OKX instruments: {e}", exchange=OKX) from e

        self._symbols.clear()
        for instrument in instruments:
            if instrument.state == "live":
                self._symbols.add_pair(instrument.base_ccy, instrument.quote_ccy, instrument.inst_id)

        logger.info(f"OKX: loaded {len(self._symbols)} spot instruments")

    async def _get(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """GET and unwrap the {code, msg, data} envelope."""
        if self._client is None:
            raise InitializationError("OKX collector is not initialized", exchange=OKX)

        raw = await self._client.get_json(path, params)
        envelope = parse_model(OkxEnvelope, raw, OKX)

        if envelope.is_error:
            raise ExchangeAPIError(
                f"OKX API error {envelope.code}: {envelope.msg}",
                exchange=OKX,
                code=envelope.code,
            )

        return envelope.data

    async def _book(self, inst_id: str, depth: int) -> OkxBook:
        data = await self._get(OKX_BOOKS, {"instId": inst_id, "sz": min(depth, MAX_DEPTH)})
        if not data:
            raise DataUnavailableError(f"No OKX order book for {inst_id}", exchange=OKX)
        return parse_model(OkxBook, data[0], OKX)

    async def fetch_price(self, symbol: str, quote: str) -> PriceSnapshot:
        """
        Fetch ticker and top of book.

        The price is the last trade unless it falls outside the current
        bid/ask, in which case the mid price is used instead.

        Raises:
            DataUnavailableError: On empty, non-positive or crossed quotes.
        """
        inst_id = self._symbols.resolve(symbol, quote)

        tickers, book = await asyncio.gather(
            self._get(OKX_TICKER, {"instId": inst_id}),
            self._book(inst_id, 1),
        )
        if not tickers:
            raise DataUnavailableError(f"No OKX ticker for {inst_id}", exchange=OKX)
        if not book.bids or not book.asks:
            raise DataUnavailableError(f"Empty OKX order book for {inst_id}", exchange=OKX)

        ticker = parse_model(OkxTicker, tickers[0], OKX)
        bid = parse_book_levels(book.bids, 1, OKX)[0][0]
        ask = parse_book_levels(book.asks, 1, OKX)[0][0]

        if bid <= 0 or ask <= 0 or ticker.last <= 0:
            raise DataUnavailableError(f"Non-positive OKX quote for {inst_id}", exchange=OKX)
        if bid >= ask:
            raise DataUnavailableError(
                f"Crossed OKX book for {inst_id}: bid {bid} >= ask {ask}", exchange=OKX
            )

        price = ticker.last
        if not bid <= price <= ask:
            price = mid_price(bid, ask)

        return PriceSnapshot(
            price=price,
            volume24h=ticker.vol_ccy_24h,
            bid=bid,
            ask=ask,
            timestamp=from_ms(book.ts),
        )

    async def fetch_prices(self, symbols: list[str], quote: str) -> dict[str, PriceSnapshot]:
        """Fetch quotes one symbol at a time, skipping failures."""
        return await fetch_each(self.fetch_price, symbols, quote, OKX)

    async def fetch_order_book(self, symbol: str, quote: str, depth: int) -> OrderBookSnapshot:
        """Fetch the order book truncated to `depth` levels per side."""
        inst_id = self._symbols.resolve(symbol, quote)
        book = await self._book(inst_id, depth)

        return OrderBookSnapshot(
            last_update_id=str(book.ts),
            timestamp=from_ms(book.ts),
            bids=parse_book_levels(book.bids, depth, OKX),
            asks=parse_book_levels(book.asks, depth, OKX),
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
