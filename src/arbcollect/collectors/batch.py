"""Per-symbol fan-out for exchanges without a bulk ticker endpoint."""

import logging
from collections.abc import Awaitable, Callable

from arbcollect.core.errors import CollectorError
from arbcollect.core.types import PriceSnapshot


logger = logging.getLogger(__name__)


async def fetch_each(
    fetch_price: Callable[[str, str], Awaitable[PriceSnapshot]],
    symbols: list[str],
    quote: str,
    exchange: str,
) -> dict[str, PriceSnapshot]:
    """
    Fetch prices one symbol at a time.

    A failing symbol is logged and left out of the result; it never
    aborts the batch.

    Args:
        fetch_price: Single-symbol fetch.
        symbols: Base symbols.
        quote: Quote symbol shared by all pairs.
        exchange: Exchange name for log context.

    Returns:
        Mapping of symbol to snapshot for the symbols that succeeded.
    """
    result: dict[str, PriceSnapshot] = {}

    for symbol in symbols:
        try:
            result[symbol] = await fetch_price(symbol, quote)
        except (CollectorError, ValueError) as e:
            logger.warning(f"{exchange}: price for {symbol}/{quote} unavailable: {e}")

    return result
