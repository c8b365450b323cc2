"""
Exchange endpoints and collection constants.

This module contains all hardcoded values used throughout the collector.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Exchange Names
# =============================================================================

# Market names as stored in the `markets` table
BINANCE: Final[str] = "Binance"
BYBIT: Final[str] = "Bybit"
KRAKEN: Final[str] = "Kraken"
OKX: Final[str] = "OKX"
ZONDA: Final[str] = "Zonda"


# =============================================================================
# Binance API Endpoints
# =============================================================================

BINANCE_REST_URL: Final[str] = "https://api.binance.us"

BINANCE_EXCHANGE_INFO: Final[str] = "/api/v3/exchangeInfo"
BINANCE_TICKER_PRICE: Final[str] = "/api/v3/ticker/price"
BINANCE_TICKER_24HR: Final[str] = "/api/v3/ticker/24hr"
BINANCE_BOOK_TICKER: Final[str] = "/api/v3/ticker/bookTicker"
BINANCE_DEPTH: Final[str] = "/api/v3/depth"


# =============================================================================
# Bybit API Endpoints
# =============================================================================

BYBIT_REST_URL: Final[str] = "https://api.bybit.com"

# Tried in order when the current endpoint is blocked (geo-fencing, 403)
BYBIT_FALLBACK_URLS: Final[tuple[str, ...]] = (
    "https://api.bybit.com",
    "https://api.bybit.us",
    "https://api.bybit.info",
    "https://api.bytick.com",
)

BYBIT_INSTRUMENTS: Final[str] = "/v5/market/instruments-info"
BYBIT_TICKERS: Final[str] = "/v5/market/tickers"
BYBIT_ORDERBOOK: Final[str] = "/v5/market/orderbook"
BYBIT_CATEGORY: Final[str] = "spot"


# =============================================================================
# Kraken API Endpoints
# =============================================================================

KRAKEN_REST_URL: Final[str] = "https://api.kraken.com"

KRAKEN_ASSET_PAIRS: Final[str] = "/0/public/AssetPairs"
KRAKEN_TICKER: Final[str] = "/0/public/Ticker"
KRAKEN_DEPTH: Final[str] = "/0/public/Depth"

# Canonical symbol -> Kraken symbol
KRAKEN_SYMBOL_ALIASES: Final[dict[str, str]] = {
    "BTC": "XBT",
    "DOGE": "XDG",
    "USDT": "USD",
}


# =============================================================================
# OKX API Endpoints
# =============================================================================

OKX_REST_URL: Final[str] = "https://www.okx.com"

OKX_INSTRUMENTS: Final[str] = "/api/v5/public/instruments"
OKX_TICKER: Final[str] = "/api/v5/market/ticker"
OKX_BOOKS: Final[str] = "/api/v5/market/books"
OKX_INST_TYPE: Final[str] = "SPOT"


# =============================================================================
# Zonda API Endpoints
# =============================================================================

ZONDA_REST_URL: Final[str] = "https://api.zondacrypto.exchange/rest"

# Tried in order when the primary domain answers 403/404
ZONDA_ALTERNATIVE_URLS: Final[tuple[str, ...]] = (
    "https://api.zondaglobal.com/rest",
    "https://api.zonda.exchange/rest",
)

ZONDA_STATS: Final[str] = "/trading/stats"
ZONDA_ORDERBOOK: Final[str] = "/trading/orderbook"

# Quote currencies tried, in order, after the PLN market
ZONDA_QUOTE_PREFERENCE: Final[tuple[str, ...]] = ("USD", "USDT", "USDC")

# Quotes treated as dollar-equivalent (no conversion)
USD_EQUIVALENTS: Final[frozenset[str]] = frozenset({"USD", "USDT", "USDC"})

DEFAULT_PLN_USD_RATE: Final[float] = 0.252
PLN_RATE_REFRESH_MS: Final[int] = 3_600_000


# =============================================================================
# Rate Limiting
# =============================================================================

# Conservative public-endpoint request rates (requests per second)
EXCHANGE_REQUESTS_PER_SECOND: Final[dict[str, int]] = {
    BINANCE: 10,
    BYBIT: 10,
    KRAKEN: 1,
    OKX: 10,
    ZONDA: 5,
}

DEFAULT_REQUESTS_PER_SECOND: Final[int] = 5


# =============================================================================
# Collection Defaults
# =============================================================================

DEFAULT_LOOKBACK_MS: Final[int] = 5 * 60 * 1000
DEFAULT_INTERVAL_MS: Final[int] = 60 * 1000
DEFAULT_ORDER_BOOK_DEPTH: Final[int] = 5

# Delay between consecutive samples of one time series (milliseconds)
DEFAULT_PACING_DELAY_MS: Final[int] = 100

DEFAULT_REQUEST_TIMEOUT_S: Final[float] = 30.0


# =============================================================================
# Spread Analysis
# =============================================================================

ANALYSIS_WINDOW_MS: Final[int] = 5 * 60 * 1000
MIN_SPREAD_PCT: Final[float] = 0.5
MAX_PRICE_RATIO: Final[float] = 100.0


# =============================================================================
# Export
# =============================================================================

MAX_EXPORT_RANGE_MS: Final[int] = 3 * 30 * 24 * 60 * 60 * 1000

CSV_HEADERS: Final[tuple[str, ...]] = (
    "id",
    "exchange_id",
    "asset_id",
    "snapshot",
    "spread",
    "timestamp",
    "volume",
    "created_at",
)


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
