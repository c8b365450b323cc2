"""
Exchange collectors.

Each collector talks to one exchange's public REST API and yields
normalized price and order book snapshots. `COLLECTOR_TYPES` maps the
market name used in the `markets` table to the collector class.
"""

from collections.abc import Callable

from arbcollect.collectors.binance import BinanceCollector
from arbcollect.collectors.bybit import BybitCollector
from arbcollect.collectors.kraken import KrakenCollector
from arbcollect.collectors.okx import OkxCollector
from arbcollect.collectors.zonda import ZondaCollector
from arbcollect.config.constants import BINANCE, BYBIT, KRAKEN, OKX, ZONDA
from arbcollect.config.settings import Settings
from arbcollect.core.types import Collector


COLLECTOR_TYPES: dict[str, type[Collector]] = {
    BINANCE: BinanceCollector,
    BYBIT: BybitCollector,
    KRAKEN: KrakenCollector,
    OKX: OkxCollector,
    ZONDA: ZondaCollector,
}

CollectorFactory = Callable[[], Collector]


def collector_factories(settings: Settings) -> dict[str, CollectorFactory]:
    """
    Factories for every known exchange, bound to the run settings.

    Args:
        settings: Pacing and timeout settings passed to each collector.

    Returns:
        Mapping of market name to a zero-argument collector factory.
    """
    def factory(cls: type[Collector]) -> CollectorFactory:
        return lambda: cls(  # type: ignore[call-arg]
            pacing_delay_ms=settings.pacing_delay_ms,
            timeout_s=settings.request_timeout_s,
        )

    return {name: factory(cls) for name, cls in COLLECTOR_TYPES.items()}


__all__ = [
    "COLLECTOR_TYPES",
    "BinanceCollector",
    "BybitCollector",
    "CollectorFactory",
    "KrakenCollector",
    "OkxCollector",
    "ZondaCollector",
    "collector_factories",
]
