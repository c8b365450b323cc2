"""
Time-series sampling shared by all collectors.

The exchanges collected from do not expose historical tick data at the
depth we need, so a series is synthesized by querying the current
ticker/book once per grid point and stamping each result with the grid
timestamp it stands for. Backfilling a past window therefore yields
near-current data labelled with past timestamps; this only approximates
history when runs are scheduled at short intervals.
"""

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Protocol, TypeVar

from arbcollect.core.types import TimeSeriesOptions


logger = logging.getLogger(__name__)


class _Stamped(Protocol):
    timestamp: datetime


SnapshotT = TypeVar("SnapshotT", bound=_Stamped)


def sample_times(options: TimeSeriesOptions) -> list[datetime]:
    """
    Grid timestamps for a window, inclusive of both endpoints.

    Produces floor((end - start) / interval) + 1 points, point i being
    start + i * interval. An inverted window produces no points.

    Args:
        options: Window and interval.

    Returns:
        Ordered list of sample timestamps.
    """
    if options.end_time < options.start_time:
        return []

    step = timedelta(milliseconds=options.interval_ms)
    count = (options.end_time - options.start_time) // step + 1
    return [options.start_time + i * step for i in range(count)]


async def collect_series(
    fetch: Callable[[], Awaitable[SnapshotT]],
    options: TimeSeriesOptions,
    pacing_delay_s: float = 0.0,
) -> list[SnapshotT]:
    """
    Sample `fetch` once per grid point.

    Calls are sequential with `pacing_delay_s` between consecutive calls
    (not after the last). Any failing sample aborts the series.

    Args:
        fetch: Coroutine factory returning one current snapshot.
        options: Window and interval.
        pacing_delay_s: Delay between calls in seconds.

    Returns:
        Snapshots in grid order, each stamped with its grid timestamp.
    """
    times = sample_times(options)
    snapshots: list[SnapshotT] = []

    for i, timestamp in enumerate(times):
        snapshot = await fetch()
        snapshots.append(dataclasses.replace(snapshot, timestamp=timestamp))  # type: ignore[type-var]

        if pacing_delay_s > 0 and i < len(times) - 1:
            await asyncio.sleep(pacing_delay_s)

    return snapshots
