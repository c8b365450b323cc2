"""
Kraken collector.

Kraken spells several assets differently (XBT for BTC, XDG for DOGE) and
quotes in USD rather than USDT, so canonical pairs go through an alias
table before lookup. Native pair ids come from AssetPairs and look like
XXBTZUSD; their `wsname` (XBT/USD) gives the base and quote.
"""

import logging
from typing import Any

from arbcollect.collectors.batch import fetch_each
from arbcollect.collectors.timeseries import collect_series
from arbcollect.config.constants import (
    DEFAULT_PACING_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    EXCHANGE_REQUESTS_PER_SECOND,
    KRAKEN,
    KRAKEN_ASSET_PAIRS,
    KRAKEN_DEPTH,
    KRAKEN_REST_URL,
    KRAKEN_SYMBOL_ALIASES,
    KRAKEN_TICKER,
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
    KrakenAssetPair,
    KrakenDepth,
    KrakenEnvelope,
    KrakenTicker,
    parse_book_levels,
    parse_model,
)
from arbcollect.exchange.rate_limiter import RateLimiter
from arbcollect.exchange.symbols import SymbolMapper
from arbcollect.utils.math import parse_float
from arbcollect.utils.time import get_timestamp_ms, utc_now


logger = logging.getLogger(__name__)

# Kraken's own spellings of bitcoin
BITCOIN_CODES = frozenset({"XBT", "XXBT"})


class KrakenCollector:
    """Collector for Kraken spot markets."""

    name = KRAKEN

    def __init__(
        self,
        client: RestClient | None = None,
        pacing_delay_ms: int = DEFAULT_PACING_DELAY_MS,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._pacing_delay_s = pacing_delay_ms / 1000
        self._timeout_s = timeout_s
        self._symbols = SymbolMapper(KRAKEN, aliases=KRAKEN_SYMBOL_ALIASES)

    @property
    def symbols(self) -> SymbolMapper:
        """Pair table loaded from AssetPairs."""
        return self._symbols

    async def initialize(self, config: ExchangeConfig) -> None:
        """
        Validate credentials and load asset pairs.

        Besides the listed BASE/QUOTE key, every pair is also reachable as
        BTC/<quote> when its base is XBT, and as <base>/USDT when it is
        quoted in USD.

        Raises:
            ConfigurationError: If the API key or secret is missing.
            InitializationError: If AssetPairs cannot be loaded.
        """
        if not config.api_key or not config.secret_key:
            raise ConfigurationError("Kraken API key and secret key are required", exchange=KRAKEN)

        if self._client is None:
            self._client = RestClient(
                KRAKEN,
                KRAKEN_REST_URL,
                rate_limiter=RateLimiter(EXCHANGE_REQUESTS_PER_SECOND[KRAKEN]),
                timeout_s=self._timeout_s,
            )

        try:
            result = await self._get(KRAKEN_ASSET_PAIRS, {})
            pairs = {native: parse_model(KrakenAssetPair, info, KRAKEN) for native, info in result.items()}
        except CollectorError as e:
            raise InitializationError(f"Failed to load Kraken asset pairs: {e}", exchange=KRAKEN) from e

        self._symbols.clear()
        for native, info in pairs.items():
            if not info.wsname or "/" not in info.wsname:
                continue

            base, quote = info.wsname.split("/", 1)
            self._symbols.add_pair(base, quote, native)

            if base in BITCOIN_CODES:
                self._symbols.add_alias_key("BTC", quote, native)
            if quote == "USD":
                self._symbols.add_alias_key(base, "USDT", native)

        logger.info(f"Kraken: loaded {len(self._symbols.native_ids)} asset pairs")

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET and unwrap the {error, result} envelope."""
        if self._client is None:
            raise InitializationError("Kraken collector is not initialized", exchange=KRAKEN)

        data = await self._client.get_json(path, params)
        envelope = parse_model(KrakenEnvelope, data, KRAKEN)

        if envelope.is_error:
            message = ", ".join(envelope.error)
            if any(err.startswith("EQuery:Unknown asset pair") for err in envelope.error):
                raise DataUnavailableError(f"Kraken: {message}", exchange=KRAKEN)
            raise ExchangeAPIError(f"Kraken API error: {message}", exchange=KRAKEN)

        return envelope.result

    @staticmethod
    def _entry(result: dict[str, Any], pair: str) -> Any:
        """
        Pick the result entry for `pair`.

        Kraken keys results by its own pair name, which can differ from
        the requested spelling (XBTUSD -> XXBTZUSD); a single-entry result
        is taken as the answer.
        """
        if pair in result:
            return result[pair]
        if len(result) == 1:
            return next(iter(result.values()))
        raise DataUnavailableError(f"No Kraken data for {pair}", exchange=KRAKEN)

    async def fetch_price(self, symbol: str, quote: str) -> PriceSnapshot:
        """
        Fetch last trade price, rolling 24h volume and top of book.

        Args:
            symbol: Canonical base symbol.
            quote: Canonical quote symbol.

        Returns:
            Current price snapshot.
        """
        pair = self._symbols.resolve(symbol, quote)
        result = await self._get(KRAKEN_TICKER, {"pair": pair})
        ticker = parse_model(KrakenTicker, self._entry(result, pair), KRAKEN)

        try:
            return PriceSnapshot(
                price=parse_float(ticker.c[0]),
                volume24h=parse_float(ticker.v[1]),
                bid=parse_float(ticker.b[0] if ticker.b else None, default=0.0),
                ask=parse_float(ticker.a[0] if ticker.a else None, default=0.0),
                timestamp=utc_now(),
            )
        except ValueError as e:
            raise DataUnavailableError(f"Bad Kraken ticker for {pair}: {e}", exchange=KRAKEN) from e

    async def fetch_prices(self, symbols: list[str], quote: str) -> dict[str, PriceSnapshot]:
        """Fetch quotes one symbol at a time, skipping failures."""
        return await fetch_each(self.fetch_price, symbols, quote, KRAKEN)

    async def fetch_order_book(self, symbol: str, quote: str, depth: int) -> OrderBookSnapshot:
        """
        Fetch the order book truncated to `depth` levels per side.

        Kraken books carry no sequence number; the fetch time in ms is
        used as the update id.
        """
        pair = self._symbols.resolve(symbol, quote)
        result = await self._get(KRAKEN_DEPTH, {"pair": pair, "count": depth})
        book = parse_model(KrakenDepth, self._entry(result, pair), KRAKEN)

        return OrderBookSnapshot(
            last_update_id=str(get_timestamp_ms()),
            timestamp=utc_now(),
            bids=parse_book_levels(book.bids, depth, KRAKEN),
            asks=parse_book_levels(book.asks, depth, KRAKEN),
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
