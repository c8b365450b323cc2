"""Core module containing type definitions, errors and the orchestrator."""

from arbcollect.core.errors import (
    CollectorError,
    ConfigurationError,
    DataUnavailableError,
    ExchangeAPIError,
    FatalError,
    InitializationError,
    NetworkError,
    StorageError,
)
from arbcollect.core.types import (
    BookSide,
    CollectionSummary,
    Collector,
    ExchangeConfig,
    ExchangeInitError,
    Market,
    MarketPair,
    OrderBookSnapshot,
    PriceSnapshot,
    RunState,
    TimeSeriesOptions,
)


__all__ = [
    "BookSide",
    "CollectionSummary",
    "Collector",
    "CollectorError",
    "ConfigurationError",
    "DataUnavailableError",
    "ExchangeAPIError",
    "ExchangeConfig",
    "ExchangeInitError",
    "FatalError",
    "InitializationError",
    "Market",
    "MarketPair",
    "NetworkError",
    "OrderBookSnapshot",
    "PriceSnapshot",
    "RunState",
    "StorageError",
    "TimeSeriesOptions",
]
