"""
Type definitions for the collector.

This module contains the dataclasses, enums and Protocol definitions
shared by collectors, the orchestrator and the storage gateway.
Snapshots are frozen: once produced by a collector they are never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol


# =============================================================================
# Enums
# =============================================================================


class BookSide(str, Enum):
    """Order book side as stored in `order_book_entries.side`."""

    BID = "bid"
    ASK = "ask"


class RunState(str, Enum):
    """Collection run lifecycle."""

    IDLE = "IDLE"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    COLLECTING = "COLLECTING"
    DONE = "DONE"
    FAILED = "FAILED"


# =============================================================================
# Configuration Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ExchangeConfig:
    """Credentials required to initialize a collector."""

    api_key: str = ""
    secret_key: str = ""
    passphrase: str = ""

    def __repr__(self) -> str:
        # Never leak secrets into logs
        return f"ExchangeConfig(api_key={'***' if self.api_key else ''!r})"


# =============================================================================
# Market Data Types
# =============================================================================


# (price, quantity)
PriceLevel = tuple[float, float]


@dataclass(slots=True, frozen=True)
class PriceSnapshot:
    """One point-in-time quote."""

    price: float
    volume24h: float
    bid: float
    ask: float
    timestamp: datetime

    @property
    def spread(self) -> float:
        """Calculate bid-ask spread."""
        return self.ask - self.bid


@dataclass(slots=True, frozen=True)
class OrderBookSnapshot:
    """
    One point-in-time order book.

    Index 0 of `bids` and `asks` is the best price, in the order the
    exchange returned the levels.
    """

    last_update_id: str
    timestamp: datetime
    bids: tuple[PriceLevel, ...]
    asks: tuple[PriceLevel, ...]

    @property
    def best_bid(self) -> PriceLevel | None:
        """Best bid level, if any."""
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> PriceLevel | None:
        """Best ask level, if any."""
        return self.asks[0] if self.asks else None


@dataclass(slots=True, frozen=True)
class TimeSeriesOptions:
    """
    Backfill window and sampling cadence.

    `interval_ms` is the spacing between samples in milliseconds.
    """

    start_time: datetime
    end_time: datetime
    interval_ms: int

    def __post_init__(self) -> None:
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")


# =============================================================================
# Storage Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Market:
    """Exchange row from the `markets` table."""

    id: int
    name: str
    is_active: bool = True


@dataclass(slots=True, frozen=True)
class MarketPair:
    """Canonical trading pair on one market."""

    id: int
    market_id: int
    coin_id: int | None
    base_currency: str
    quote_currency: str
    is_active: bool
    market: Market

    @property
    def symbol(self) -> str:
        """Canonical BASE/QUOTE spelling."""
        return f"{self.base_currency}/{self.quote_currency}"

    @property
    def is_eligible(self) -> bool:
        """Both the pair and its market are active."""
        return self.is_active and self.market.is_active


@dataclass(slots=True, frozen=True)
class StoredPrice:
    """A `price_data` row joined to its pair and market."""

    market_pair_id: int
    coin_id: int | None
    base_currency: str
    quote_currency: str
    market_name: str
    price: float
    volume24h: float
    timestamp: datetime

    @property
    def symbol(self) -> str:
        """Canonical BASE/QUOTE spelling."""
        return f"{self.base_currency}/{self.quote_currency}"


@dataclass(slots=True, frozen=True)
class SpreadOpportunity:
    """Cross-exchange price gap for one pair, buy side being the cheaper market."""

    buy_market_pair_id: int
    sell_market_pair_id: int
    coin_id: int | None
    symbol: str
    buy_market: str
    sell_market: str
    timestamp: datetime
    buy_price: float
    sell_price: float
    spread_percentage: float
    volume_constraint: float
    estimated_profit_usd: float
    status: str = "identified"


# =============================================================================
# Run Result Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ExchangeInitError:
    """A collector that failed to initialize."""

    exchange: str
    error: str


@dataclass(slots=True)
class CollectionSummary:
    """Outcome counts of one collection run."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    price_points: int = 0
    order_books: int = 0
    init_errors: list[ExchangeInitError] = field(default_factory=list)
    duration_s: float = 0.0

    @property
    def failed_init(self) -> int:
        """Number of exchanges that failed to initialize."""
        return len(self.init_errors)

    @property
    def processed(self) -> int:
        """Pairs that were attempted."""
        return self.succeeded + self.failed


# =============================================================================
# Protocols
# =============================================================================


class Collector(Protocol):
    """Capability set every exchange collector implements."""

    name: str

    async def initialize(self, config: ExchangeConfig) -> None:
        """Validate credentials and load the instrument list."""
        ...

    async def fetch_price(self, symbol: str, quote: str) -> PriceSnapshot:
        """Fetch one current quote."""
        ...

    async def fetch_prices(self, symbols: list[str], quote: str) -> dict[str, PriceSnapshot]:
        """Fetch quotes for many symbols, skipping failures."""
        ...

    async def fetch_order_book(self, symbol: str, quote: str, depth: int) -> OrderBookSnapshot:
        """Fetch one order book truncated to `depth` levels."""
        ...

    async def fetch_price_time_series(
        self, symbol: str, quote: str, options: TimeSeriesOptions
    ) -> list[PriceSnapshot]:
        """Sample quotes over the requested grid."""
        ...

    async def fetch_order_book_time_series(
        self, symbol: str, quote: str, depth: int, options: TimeSeriesOptions
    ) -> list[OrderBookSnapshot]:
        """Sample order books over the requested grid."""
        ...

    async def cleanup(self) -> None:
        """Release network resources."""
        ...
