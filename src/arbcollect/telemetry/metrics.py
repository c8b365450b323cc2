"""
Run metrics for a collection pass.

The orchestrator bumps dotted `<exchange>.<event>` counters and records
how long each pair took; the CLI reporter reads them back when the run
summary is printed. Everything lives in memory for one process.
"""

import time
from collections import Counter, defaultdict, deque
from dataclasses import asdict, dataclass


@dataclass
class LatencyStats:
    """Summary of one duration series, in milliseconds."""

    min_ms: float = 0.0
    max_ms: float = 0.0
    avg_ms: float = 0.0
    p50_ms: float = 0.0
    p95_ms: float = 0.0
    count: int = 0

    @classmethod
    def from_samples(cls, samples: list[float]) -> "LatencyStats":
        if not samples:
            return cls()

        ordered = sorted(samples)
        last = len(ordered) - 1
        return cls(
            min_ms=ordered[0],
            max_ms=ordered[last],
            avg_ms=sum(ordered) / len(ordered),
            p50_ms=ordered[len(ordered) // 2],
            p95_ms=ordered[min(last, int(len(ordered) * 0.95))],
            count=len(ordered),
        )


class MetricsCollector:
    """
    Counters and duration series for one run.

    Counter names are dotted, `<exchange>.<event>` (e.g. "Kraken.failed"),
    so they can be grouped per exchange.
    """

    def __init__(self, latency_window_size: int = 10_000) -> None:
        self._window = latency_window_size
        self._counters: Counter[str] = Counter()
        self._series: defaultdict[str, deque[float]] = defaultdict(self._new_series)
        self._started = time.monotonic()

    def _new_series(self) -> deque[float]:
        return deque(maxlen=self._window)

    def increment_counter(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    @property
    def counters(self) -> dict[str, int]:
        """Snapshot of every counter."""
        return dict(self._counters)

    def counters_for(self, prefix: str) -> dict[str, int]:
        """
        Counters under a dotted prefix, with the prefix stripped.

        Example:
            >>> m = MetricsCollector()
            >>> m.increment_counter("OKX.succeeded", 2)
            >>> m.counters_for("OKX")
            {'succeeded': 2}
        """
        grouped: dict[str, int] = {}
        for name, count in self._counters.items():
            exchange, _, event = name.partition(".")
            if exchange == prefix and event:
                grouped[event] = count
        return grouped

    def record_latency(self, name: str, latency_ms: float) -> None:
        """Append one duration sample (oldest samples fall off the window)."""
        self._series[name].append(latency_ms)

    def get_latency_stats(self, name: str) -> LatencyStats:
        return LatencyStats.from_samples(list(self._series.get(name, ())))

    @property
    def uptime_seconds(self) -> float:
        """Seconds since creation or the last reset."""
        return time.monotonic() - self._started

    def to_dict(self) -> dict[str, object]:
        """Plain-dict dump, e.g. for JSON logging at the end of a run."""
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": self.counters,
            "latencies": {name: asdict(self.get_latency_stats(name)) for name in self._series},
        }

    def reset(self) -> None:
        self._counters.clear()
        self._series.clear()
        self._started = time.monotonic()
