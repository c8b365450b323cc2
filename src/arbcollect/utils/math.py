"""
Numeric helpers for exchange payloads.

Exchanges deliver prices and quantities as strings, numbers or nested
lists of either; everything is normalized to float before it reaches
a snapshot.
"""

import math
from collections.abc import Iterable, Sequence
from typing import Any, Final


# Epsilon for floating point comparisons
EPSILON: Final[float] = 1e-10


def parse_float(value: Any, default: float | None = None) -> float:
    """
    Parse a numeric field that may arrive as string.

    Args:
        value: Raw payload value.
        default: Returned for None/empty values; if None, those raise.

    Returns:
        Parsed float.

    Raises:
        ValueError: If the value is not numeric (or empty without default).

    Example:
        >>> parse_float("42000.10")
        42000.1
        >>> parse_float("", default=0.0)
        0.0
    """
    if value is None or value == "":
        if default is None:
            raise ValueError("missing numeric value")
        return default

    result = float(value)
    if math.isnan(result):
        raise ValueError(f"not a number: {value!r}")
    return result


def parse_levels(
    levels: Iterable[Sequence[Any]],
    depth: int,
) -> tuple[tuple[float, float], ...]:
    """
    Convert raw [price, quantity, ...] levels to float pairs.

    Order is preserved; only the first `depth` levels are kept and any
    trailing fields (timestamps, order counts) are dropped.

    Raises:
        ValueError: If a kept level is shorter than two fields or not numeric.
    """
    result: list[tuple[float, float]] = []
    for level in levels:
        if len(result) >= depth:
            break
        try:
            price, quantity = level[0], level[1]
        except (IndexError, KeyError, TypeError) as e:
            raise ValueError(f"malformed level: {level!r}") from e
        try:
            result.append((parse_float(price), parse_float(quantity)))
        except TypeError as e:
            raise ValueError(f"malformed level: {level!r}") from e
    return tuple(result)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default on division by zero.

    Args:
        numerator: The dividend.
        denominator: The divisor.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default value.
    """
    if abs(denominator) < EPSILON:
        return default
    return numerator / denominator


def mid_price(bid: float, ask: float) -> float:
    """Midpoint between best bid and best ask."""
    return (bid + ask) / 2


def spread_pct(price: float, reference: float) -> float:
    """
    Signed percentage difference of `price` over `reference`.

    Example:
        >>> spread_pct(101.0, 100.0)
        1.0
    """
    return safe_divide(price - reference, reference) * 100
