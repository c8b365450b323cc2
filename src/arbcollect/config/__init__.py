"""Configuration module for the collector."""

from arbcollect.config.constants import (
    BINANCE,
    BYBIT,
    DEFAULT_INTERVAL_MS,
    DEFAULT_LOOKBACK_MS,
    KRAKEN,
    OKX,
    ZONDA,
)
from arbcollect.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "BINANCE",
    "BYBIT",
    "KRAKEN",
    "OKX",
    "ZONDA",
    "DEFAULT_INTERVAL_MS",
    "DEFAULT_LOOKBACK_MS",
]
