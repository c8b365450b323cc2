"""Exchange REST transport, response models and symbol mapping."""

from arbcollect.exchange.client import RestClient
from arbcollect.exchange.rate_limiter import RateLimiter
from arbcollect.exchange.symbols import SymbolMapper, pair_key


__all__ = [
    "RateLimiter",
    "RestClient",
    "SymbolMapper",
    "pair_key",
]
