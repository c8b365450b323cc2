"""
Cross-exchange spread detection.

Compares the most recent stored prices of the same canonical pair across
exchanges and reports price gaps wide enough to be worth a look. This is
a screening step: fees, transfer times and order book depth are not
taken into account.
"""

import logging
from collections.abc import Iterable
from itertools import combinations

from arbcollect.config.constants import MAX_PRICE_RATIO, MIN_SPREAD_PCT
from arbcollect.core.types import SpreadOpportunity, StoredPrice
from arbcollect.utils.math import safe_divide, spread_pct


logger = logging.getLogger(__name__)


def group_by_pair(prices: Iterable[StoredPrice]) -> dict[str, list[StoredPrice]]:
    """Group rows by canonical BASE/QUOTE, keeping input order."""
    grouped: dict[str, list[StoredPrice]] = {}
    for price in prices:
        grouped.setdefault(price.symbol, []).append(price)
    return grouped


def is_suspicious(a: float, b: float, max_ratio: float = MAX_PRICE_RATIO) -> bool:
    """
    Check if two prices are too far apart to be the same asset.

    Usually a mislabelled quote currency or unconverted fiat price.
    """
    if a <= 0 or b <= 0:
        return True
    return safe_divide(a, b) > max_ratio or safe_divide(b, a) > max_ratio


def compare(
    first: StoredPrice,
    second: StoredPrice,
    min_spread_pct: float = MIN_SPREAD_PCT,
) -> SpreadOpportunity | None:
    """
    Evaluate one pair of quotes.

    Args:
        first: Quote on one exchange.
        second: Quote for the same pair on another exchange.
        min_spread_pct: Absolute spread threshold in percent (exclusive).

    Returns:
        Opportunity buying on the cheaper market, or None.
    """
    spread = spread_pct(first.price, second.price)
    if abs(spread) <= min_spread_pct:
        return None

    buy, sell = (second, first) if spread > 0 else (first, second)
    volume = min(buy.volume24h, sell.volume24h)

    return SpreadOpportunity(
        buy_market_pair_id=buy.market_pair_id,
        sell_market_pair_id=sell.market_pair_id,
        coin_id=first.coin_id,
        symbol=first.symbol,
        buy_market=buy.market_name,
        sell_market=sell.market_name,
        timestamp=first.timestamp,
        buy_price=buy.price,
        sell_price=sell.price,
        spread_percentage=abs(spread),
        volume_constraint=volume,
        estimated_profit_usd=volume * abs(spread) / 100,
    )


def find_opportunities(
    prices: Iterable[StoredPrice],
    min_spread_pct: float = MIN_SPREAD_PCT,
    max_ratio: float = MAX_PRICE_RATIO,
) -> list[SpreadOpportunity]:
    """
    Find spreads above threshold between every two quotes of a pair.

    Args:
        prices: Recent price rows, any order.
        min_spread_pct: Absolute spread threshold in percent.
        max_ratio: Comparisons with a larger price ratio are skipped.

    Returns:
        Opportunities sorted by spread, widest first.
    """
    opportunities: list[SpreadOpportunity] = []

    for symbol, entries in group_by_pair(prices).items():
        if len(entries) < 2:
            continue

        for first, second in combinations(entries, 2):
            # Samples of the same market at different times
            if first.market_pair_id == second.market_pair_id:
                continue

            if is_suspicious(first.price, second.price, max_ratio):
                logger.debug(
                    f"Skipping suspicious comparison for {symbol}: "
                    f"{first.market_name} {first.price} vs {second.market_name} {second.price}"
                )
                continue

            opportunity = compare(first, second, min_spread_pct)
            if opportunity is not None:
                opportunities.append(opportunity)

    opportunities.sort(key=lambda o: o.spread_percentage, reverse=True)
    return opportunities
