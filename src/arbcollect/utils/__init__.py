"""Utility functions for the collector."""

from arbcollect.utils.math import mid_price, parse_float, parse_levels, safe_divide, spread_pct
from arbcollect.utils.time import from_ms, get_timestamp_ms, to_ms, utc_now


__all__ = [
    "from_ms",
    "get_timestamp_ms",
    "mid_price",
    "parse_float",
    "parse_levels",
    "safe_divide",
    "spread_pct",
    "to_ms",
    "utc_now",
]
