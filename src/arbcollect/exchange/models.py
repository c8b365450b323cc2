"""
Pydantic models for exchange API responses.

These models provide type-safe parsing of each exchange's REST payloads.
Numeric fields that arrive as strings are coerced to float here, so
collectors only ever see parsed numbers. Order book levels are kept raw
and converted by `parse_book_levels`, which preserves ordering.
"""

from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from arbcollect.core.errors import DataUnavailableError
from arbcollect.utils.math import parse_levels


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_model(model: type[ModelT], data: Any, exchange: str) -> ModelT:
    """
    Validate a payload, converting failures to DataUnavailableError.

    Args:
        model: Model class to validate against.
        data: Decoded JSON payload.
        exchange: Exchange name for error context.

    Returns:
        Validated model instance.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DataUnavailableError(
            f"Unexpected {model.__name__} payload: {e.error_count()} validation errors",
            exchange=exchange,
        ) from e


def parse_book_levels(
    levels: Iterable[Sequence[Any]],
    depth: int,
    exchange: str,
) -> tuple[tuple[float, float], ...]:
    """
    Convert one side of a raw book; malformed levels raise DataUnavailableError.

    Args:
        levels: Raw [price, quantity, ...] levels in exchange order.
        depth: Levels to keep.
        exchange: Exchange name for error context.
    """
    try:
        return parse_levels(levels, depth)
    except ValueError as e:
        raise DataUnavailableError(f"Unexpected order book payload: {e}", exchange=exchange) from e


# =============================================================================
# Binance
# =============================================================================


class BinanceSymbol(BaseModel):
    """Symbol entry from exchangeInfo."""

    symbol: str
    status: str
    base_asset: str = Field(alias="baseAsset")
    quote_asset: str = Field(alias="quoteAsset")

    model_config = {"populate_by_name": True}


class BinanceExchangeInfo(BaseModel):
    """Exchange information response."""

    symbols: list[BinanceSymbol]


class BinancePriceTicker(BaseModel):
    """Latest price response."""

    symbol: str
    price: float


class Binance24hrTicker(BaseModel):
    """Rolling 24h statistics response."""

    symbol: str
    volume: float
    quote_volume: float | None = Field(default=None, alias="quoteVolume")

    model_config = {"populate_by_name": True}


class BinanceBookTicker(BaseModel):
    """Best bid/ask response."""

    symbol: str
    bid_price: float = Field(alias="bidPrice")
    ask_price: float = Field(alias="askPrice")

    model_config = {"populate_by_name": True}


class BinanceDepth(BaseModel):
    """Order book response."""

    last_update_id: int = Field(alias="lastUpdateId")
    bids: list[list[Any]]
    asks: list[list[Any]]

    model_config = {"populate_by_name": True}


# =============================================================================
# Bybit
# =============================================================================


class BybitEnvelope(BaseModel):
    """V5 response wrapper; errors are reported with HTTP 200."""

    ret_code: int = Field(alias="retCode")
    ret_msg: str = Field(default="", alias="retMsg")
    result: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @property
    def is_error(self) -> bool:
        """Check if the exchange reported an error."""
        return self.ret_code != 0


class BybitInstrument(BaseModel):
    """Spot instrument entry."""

    symbol: str
    base_coin: str = Field(alias="baseCoin")
    quote_coin: str = Field(alias="quoteCoin")
    status: str = "Trading"

    model_config = {"populate_by_name": True}


class BybitTicker(BaseModel):
    """Spot ticker entry."""

    symbol: str
    last_price: float = Field(alias="lastPrice")
    volume24h: float = Field(alias="volume24h")
    bid1_price: float | None = Field(default=None, alias="bid1Price")
    ask1_price: float | None = Field(default=None, alias="ask1Price")

    model_config = {"populate_by_name": True}


class BybitOrderbook(BaseModel):
    """Order book result."""

    symbol: str = Field(alias="s")
    bids: list[list[Any]] = Field(alias="b")
    asks: list[list[Any]] = Field(alias="a")
    ts: int
    update_id: int | None = Field(default=None, alias="u")

    model_config = {"populate_by_name": True}


# =============================================================================
# Kraken
# =============================================================================


class KrakenEnvelope(BaseModel):
    """Public endpoint wrapper; errors are reported with HTTP 200."""

    error: list[str] = Field(default_factory=list)
    result: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        """Check if the exchange reported an error."""
        return len(self.error) > 0


class KrakenAssetPair(BaseModel):
    """Tradable asset pair entry."""

    altname: str
    wsname: str | None = None
    base: str = ""
    quote: str = ""


class KrakenTicker(BaseModel):
    """Ticker entry (arrays of [today, last 24h] or [price, lots...])."""

    c: list[str] = Field(min_length=1)  # last trade closed [price, lot volume]
    v: list[str] = Field(min_length=2)  # volume [today, last 24 hours]
    b: list[str] = Field(default_factory=list)  # best bid [price, whole lot, lot]
    a: list[str] = Field(default_factory=list)  # best ask [price, whole lot, lot]


class KrakenDepth(BaseModel):
    """Order book entry; levels are [price, volume, timestamp]."""

    bids: list[list[Any]]
    asks: list[list[Any]]


# =============================================================================
# OKX
# =============================================================================


class OkxEnvelope(BaseModel):
    """V5 response wrapper; `code` is "0" on success."""

    code: str
    msg: str = ""
    data: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def is_error(self) -> bool:
        """Check if the exchange reported an error."""
        return self.code != "0"


class OkxInstrument(BaseModel):
    """Spot instrument entry."""

    inst_id: str = Field(alias="instId")
    base_ccy: str = Field(alias="baseCcy")
    quote_ccy: str = Field(alias="quoteCcy")
    state: str = "live"

    model_config = {"populate_by_name": True}


class OkxTicker(BaseModel):
    """Ticker entry."""

    inst_id: str = Field(alias="instId")
    last: float
    vol_ccy_24h: float = Field(alias="volCcy24h")
    bid_px: float | None = Field(default=None, alias="bidPx")
    ask_px: float | None = Field(default=None, alias="askPx")
    ts: int

    model_config = {"populate_by_name": True}


class OkxBook(BaseModel):
    """Order book entry; levels are [price, size, liquidated, orders]."""

    asks: list[list[Any]]
    bids: list[list[Any]]
    ts: int


# =============================================================================
# Zonda
# =============================================================================


class ZondaStatsItem(BaseModel):
    """Per-market statistics."""

    m: str
    v: float | None = None  # 24h volume in base currency
    r24h: float | None = None  # last rate
    h: float | None = None
    l: float | None = None  # noqa: E741


class ZondaStats(BaseModel):
    """Statistics for all markets."""

    status: str
    items: dict[str, ZondaStatsItem] = Field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        """Check if the exchange reported an error."""
        return self.status != "Ok"


class ZondaLevel(BaseModel):
    """One order book position."""

    ra: float  # rate
    ca: float  # current amount


class ZondaOrderBook(BaseModel):
    """Order book response; `buy` is best-first bids, `sell` best-first asks."""

    status: str
    buy: list[ZondaLevel] = Field(default_factory=list)
    sell: list[ZondaLevel] = Field(default_factory=list)
    timestamp: int | None = None
    seq_no: int | None = Field(default=None, alias="seqNo")

    model_config = {"populate_by_name": True}

    @property
    def is_error(self) -> bool:
        """Check if the exchange reported an error."""
        return self.status != "Ok"
