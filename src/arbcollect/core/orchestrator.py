"""
Collection orchestrator.

Drives one collection run through its lifecycle:

    IDLE -> INITIALIZING -> READY -> COLLECTING -> DONE
                  |                       |
                  +-------> FAILED <------+

Exchanges are processed one at a time and pairs within an exchange one
at a time; for each pair the price series and order book series are
fetched concurrently and then persisted.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, Protocol

from arbcollect.core.errors import CollectorError, ConfigurationError, FatalError
from arbcollect.core.types import (
    CollectionSummary,
    Collector,
    ExchangeConfig,
    ExchangeInitError,
    MarketPair,
    OrderBookSnapshot,
    PriceSnapshot,
    RunState,
    TimeSeriesOptions,
)
from arbcollect.telemetry.metrics import MetricsCollector
from arbcollect.utils.time import utc_now


logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    """Persistence operations the orchestrator needs."""

    async def fetch_active_market_pairs(self) -> list[MarketPair]: ...

    async def insert_price_points(
        self, market_pair_id: int, snapshots: Sequence[PriceSnapshot]
    ) -> int: ...

    async def insert_order_books(
        self, market_pair_id: int, books: Sequence[OrderBookSnapshot]
    ) -> list[Any]: ...

    async def insert_order_book_entries(
        self, order_book_ids: Sequence[Any], books: Sequence[OrderBookSnapshot]
    ) -> int: ...


class CollectionOrchestrator:
    """
    Runs collectors over the active market pairs and stores the results.

    Failures are isolated at the narrowest scope: one exchange failing to
    initialize leaves the others running, one pair failing leaves the
    remaining pairs running. Only FatalError escapes.
    """

    def __init__(
        self,
        store: SnapshotStore,
        configs: Mapping[str, ExchangeConfig],
        factories: Mapping[str, Callable[[], Collector]],
        lookback_ms: int,
        interval_ms: int,
        depth: int,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            store: Persistence gateway.
            configs: Credentials of the configured exchanges.
            factories: Collector factory per market name.
            lookback_ms: Trailing window sampled on each run.
            interval_ms: Spacing between samples.
            depth: Order book levels per side.
            metrics: Optional metrics sink.
        """
        self._store = store
        self._configs = dict(configs)
        self._factories = dict(factories)
        self._lookback_ms = lookback_ms
        self._interval_ms = interval_ms
        self._depth = depth
        self._metrics = metrics or MetricsCollector()

        self._state = RunState.IDLE
        self._collectors: dict[str, Collector] = {}
        self._pairs: list[MarketPair] = []
        self._skipped = 0

    @property
    def state(self) -> RunState:
        """Current lifecycle state."""
        return self._state

    @property
    def collectors(self) -> dict[str, Collector]:
        """Initialized collectors by market name."""
        return dict(self._collectors)

    @property
    def pairs(self) -> list[MarketPair]:
        """Pairs selected for collection."""
        return list(self._pairs)

    @property
    def skipped(self) -> int:
        """Eligible pairs whose exchange has no initialized collector."""
        return self._skipped

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics

    # =========================================================================
    # Initialization
    # =========================================================================

    async def initialize(self) -> list[ExchangeInitError]:
        """
        Initialize collectors and select the pairs to collect.

        Returns:
            Exchanges that failed to initialize, with their error text.

        Raises:
            FatalError: If no collector initialized, the pair list cannot
                be loaded, or no eligible pair maps to a collector.
        """
        if self._state is not RunState.IDLE:
            raise RuntimeError(f"Cannot initialize from state {self._state.value}")

        self._state = RunState.INITIALIZING
        errors = await self._initialize_collectors()

        if not self._collectors:
            self._state = RunState.FAILED
            raise FatalError("No exchange collectors could be initialized")

        logger.info(f"Initialized collectors: {', '.join(self._collectors)}")

        try:
            pairs = await self._store.fetch_active_market_pairs()
        except CollectorError as e:
            self._state = RunState.FAILED
            raise FatalError(f"Failed to load market pairs: {e}") from e

        self._select_pairs(pairs)

        if not self._pairs:
            self._state = RunState.FAILED
            raise FatalError("No active market pairs match an initialized collector")

        self._state = RunState.READY
        return errors

    async def _initialize_collectors(self) -> list[ExchangeInitError]:
        errors: list[ExchangeInitError] = []

        for name, config in self._configs.items():
            factory = self._factories.get(name)
            if factory is None:
                logger.warning(f"No collector available for configured exchange {name}")
                continue

            collector = factory()
            try:
                await collector.initialize(config)
            except ConfigurationError as e:
                logger.info(f"{name}: not configured, skipping ({e})")
                await self._cleanup_collector(name, collector)
                continue
            except CollectorError as e:
                logger.error(f"{name}: initialization failed: {e}")
                errors.append(ExchangeInitError(exchange=name, error=str(e)))
                self._metrics.increment_counter(f"{name}.init_failed")
                await self._cleanup_collector(name, collector)
                continue

            self._collectors[name] = collector

        return errors

    def _select_pairs(self, pairs: list[MarketPair]) -> None:
        """Keep eligible pairs with a collector; count the rest as skipped."""
        eligible = [p for p in pairs if p.is_eligible]
        self._pairs = [p for p in eligible if p.market.name in self._collectors]
        self._skipped = len(eligible) - len(self._pairs)

        for pair in eligible:
            if pair.market.name not in self._collectors:
                self._metrics.increment_counter(f"{pair.market.name}.skipped")
                logger.debug(f"Skipping {pair.symbol} on {pair.market.name}: no collector")

        logger.info(
            f"Selected {len(self._pairs)} of {len(eligible)} eligible pairs "
            f"({self._skipped} skipped)"
        )

    # =========================================================================
    # Collection
    # =========================================================================

    def window(self, now: datetime | None = None) -> TimeSeriesOptions:
        """Lookback window ending at `now`."""
        end = now or utc_now()
        return TimeSeriesOptions(
            start_time=end - timedelta(milliseconds=self._lookback_ms),
            end_time=end,
            interval_ms=self._interval_ms,
        )

    def pairs_by_exchange(self) -> dict[str, list[MarketPair]]:
        """Selected pairs grouped by market name, in first-seen order."""
        grouped: dict[str, list[MarketPair]] = {}
        for pair in self._pairs:
            grouped.setdefault(pair.market.name, []).append(pair)
        return grouped

    async def collect(
        self,
        init_errors: Sequence[ExchangeInitError] = (),
        now: datetime | None = None,
    ) -> CollectionSummary:
        """
        Collect and persist every selected pair.

        Args:
            init_errors: Result of initialize(), carried into the summary.
            now: End of the lookback window (default: current time).

        Returns:
            Counts of succeeded, failed and skipped pairs.
        """
        if self._state is not RunState.READY:
            raise RuntimeError(f"Cannot collect from state {self._state.value}")

        self._state = RunState.COLLECTING
        options = self.window(now)
        summary = CollectionSummary(skipped=self._skipped, init_errors=list(init_errors))
        started = time.perf_counter()

        try:
            for exchange, pairs in self.pairs_by_exchange().items():
                collector = self._collectors[exchange]
                logger.info(f"{exchange}: collecting {len(pairs)} pairs")

                for pair in pairs:
                    await self._process_pair(collector, pair, options, summary)
        except BaseException:
            self._state = RunState.FAILED
            raise

        summary.duration_s = time.perf_counter() - started
        self._state = RunState.DONE

        logger.info(
            f"Collection finished: {summary.succeeded} succeeded, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        return summary

    async def _process_pair(
        self,
        collector: Collector,
        pair: MarketPair,
        options: TimeSeriesOptions,
        summary: CollectionSummary,
    ) -> None:
        exchange = pair.market.name
        started = time.perf_counter()

        try:
            prices, books = await self.collect_pair(collector, pair, options)
        except (CollectorError, ValueError) as e:
            self._record_failure(summary, exchange)
            logger.error(f"{exchange}: {pair.symbol} failed: {e}")
            return
        except Exception:
            self._record_failure(summary, exchange)
            logger.exception(f"{exchange}: {pair.symbol} failed with an unexpected error")
            return

        summary.succeeded += 1
        summary.price_points += prices
        summary.order_books += books
        self._metrics.increment_counter(f"{exchange}.succeeded")
        self._metrics.record_latency("pair_ms", (time.perf_counter() - started) * 1000)
        logger.info(f"{exchange}: {pair.symbol} stored {prices} prices, {books} order books")

    def _record_failure(self, summary: CollectionSummary, exchange: str) -> None:
        summary.failed += 1
        self._metrics.increment_counter(f"{exchange}.failed")

    async def collect_pair(
        self,
        collector: Collector,
        pair: MarketPair,
        options: TimeSeriesOptions,
    ) -> tuple[int, int]:
        """
        Fetch and persist both series for one pair.

        The price and order book series are sampled concurrently; if one
        fails the other is cancelled and awaited before the error is
        raised, so nothing from this pair outlives the call.

        Order book headers are written before their entries; a failure
        between the two writes leaves headers without entries.

        Returns:
            (price rows written, order books written)
        """
        try:
            async with asyncio.TaskGroup() as group:
                price_task = group.create_task(
                    collector.fetch_price_time_series(pair.base_currency, pair.quote_currency, options)
                )
                book_task = group.create_task(
                    collector.fetch_order_book_time_series(
                        pair.base_currency, pair.quote_currency, self._depth, options
                    )
                )
        except ExceptionGroup as group_error:
            raise group_error.exceptions[0] from None

        prices, books = price_task.result(), book_task.result()

        written = await self._store.insert_price_points(pair.id, prices)
        book_ids = await self._store.insert_order_books(pair.id, books)
        await self._store.insert_order_book_entries(book_ids, books)

        return written, len(book_ids)

    # =========================================================================
    # Cleanup
    # =========================================================================

    async def cleanup(self) -> None:
        """Release every collector; failures are logged, never raised."""
        for name, collector in self._collectors.items():
            await self._cleanup_collector(name, collector)
        self._collectors.clear()

    async def _cleanup_collector(self, name: str, collector: Collector) -> None:
        try:
            await collector.cleanup()
        except Exception as e:
            logger.warning(f"{name}: cleanup failed: {e}")


@asynccontextmanager
async def create_orchestrator(
    store: SnapshotStore,
    configs: Mapping[str, ExchangeConfig],
    factories: Mapping[str, Callable[[], Collector]],
    lookback_ms: int,
    interval_ms: int,
    depth: int,
    metrics: MetricsCollector | None = None,
) -> AsyncIterator[CollectionOrchestrator]:
    """
    Create an orchestrator and always clean up its collectors.

    Usage:
        async with create_orchestrator(db, configs, factories, ...) as orch:
            errors = await orch.initialize()
            summary = await orch.collect(errors)
    """
    orchestrator = CollectionOrchestrator(
        store, configs, factories, lookback_ms, interval_ms, depth, metrics
    )

    try:
        yield orchestrator
    finally:
        await orchestrator.cleanup()
