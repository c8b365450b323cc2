"""Cross-exchange spread analysis over stored prices."""

from arbcollect.strategy.spreads import compare, find_opportunities, group_by_pair


__all__ = [
    "compare",
    "find_opportunities",
    "group_by_pair",
]
