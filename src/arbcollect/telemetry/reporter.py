"""
Terminal reports for collection and analysis runs.

Renders the end-of-run summary panel and the top spread opportunities.
"""

import sys
from collections.abc import Sequence
from typing import TextIO

from arbcollect.core.types import CollectionSummary, SpreadOpportunity
from arbcollect.telemetry.metrics import MetricsCollector
from arbcollect.utils.time import format_duration_s


class CLIReporter:
    """
    Boxed text panels written to a stream.

    Displays:
    - Pair outcome counts and stored row counts
    - Per-exchange breakdown from the metrics counters
    - Exchanges that failed to initialize
    """

    # Box drawing characters
    BOX_TL = "\u2554"  # ╔
    BOX_TR = "\u2557"  # ╗
    BOX_BL = "\u255a"  # ╚
    BOX_BR = "\u255d"  # ╝
    BOX_H = "\u2550"  # ═
    BOX_V = "\u2551"  # ║
    BOX_LT = "\u2560"  # ╠
    BOX_RT = "\u2563"  # ╣

    def __init__(
        self,
        metrics: MetricsCollector | None = None,
        width: int = 64,
        output: TextIO | None = None,
    ) -> None:
        """
        Initialize CLI reporter.

        Args:
            metrics: Metrics collected during the run, if any.
            width: Panel width in characters.
            output: Output stream (default: stdout).
        """
        self._metrics = metrics
        self._width = width
        self._output = output or sys.stdout

    def _pad(self, text: str, width: int) -> str:
        """Pad text to width."""
        return text.ljust(width)[:width]

    def _line(self, content: str) -> str:
        """Create a line with borders."""
        return f"{self.BOX_V}{self._pad(content, self._width - 2)}{self.BOX_V}"

    def _divider(self) -> str:
        """Create a horizontal divider."""
        return f"{self.BOX_LT}{self.BOX_H * (self._width - 2)}{self.BOX_RT}"

    def _exchanges(self, summary: CollectionSummary) -> list[str]:
        names: list[str] = []
        if self._metrics is not None:
            for counter in self._metrics.counters:
                name = counter.rsplit(".", 1)[0]
                if name not in names:
                    names.append(name)
        for err in summary.init_errors:
            if err.exchange not in names:
                names.append(err.exchange)
        return names

    def render_summary(self, summary: CollectionSummary) -> str:
        """
        Render the collection summary panel.

        Args:
            summary: Result of a collection run.

        Returns:
            Formatted panel.
        """
        lines = [f"{self.BOX_TL}{self.BOX_H * (self._width - 2)}{self.BOX_TR}"]
        lines.append(self._line("  COLLECTION SUMMARY"))
        lines.append(self._divider())

        lines.append(self._line(f"  Duration:          {format_duration_s(summary.duration_s)}"))
        lines.append(self._line(f"  Pairs succeeded:   {summary.succeeded:,}"))
        lines.append(self._line(f"  Pairs failed:      {summary.failed:,}"))
        lines.append(self._line(f"  Pairs skipped:     {summary.skipped:,}"))
        lines.append(self._line(f"  Failed exchanges:  {summary.failed_init:,}"))
        lines.append(self._line(f"  Price points:      {summary.price_points:,}"))
        lines.append(self._line(f"  Order books:       {summary.order_books:,}"))

        exchanges = self._exchanges(summary)
        if exchanges and self._metrics is not None:
            lines.append(self._divider())
            lines.append(self._line(f"  {'EXCHANGE':<12}{'OK':>8}{'FAILED':>8}{'SKIPPED':>9}"))
            for name in exchanges:
                counts = self._metrics.counters_for(name)
                lines.append(
                    self._line(
                        f"  {name:<12}{counts.get('succeeded', 0):>8}"
                        f"{counts.get('failed', 0):>8}{counts.get('skipped', 0):>9}"
                    )
                )

            pair_stats = self._metrics.get_latency_stats("pair_ms")
            if pair_stats.count:
                lines.append(self._divider())
                lines.append(
                    self._line(
                        f"  Per pair: avg {pair_stats.avg_ms / 1000:.1f}s  "
                        f"p95 {pair_stats.p95_ms / 1000:.1f}s  max {pair_stats.max_ms / 1000:.1f}s"
                    )
                )

        if summary.init_errors:
            lines.append(self._divider())
            lines.append(self._line("  INITIALIZATION ERRORS"))
            for err in summary.init_errors:
                lines.append(self._line(f"  {err.exchange}: {err.error}"))

        lines.append(f"{self.BOX_BL}{self.BOX_H * (self._width - 2)}{self.BOX_BR}")
        return "\n".join(lines)

    def render_opportunities(self, opportunities: Sequence[SpreadOpportunity], limit: int = 5) -> str:
        """
        Render the widest spreads.

        Args:
            opportunities: Opportunities sorted widest first.
            limit: Maximum number shown.

        Returns:
            Formatted text block.
        """
        lines = [f"Found {len(opportunities)} opportunities"]
        for opp in opportunities[:limit]:
            lines.append("")
            lines.append(f"{opp.symbol}:")
            lines.append(f"  Buy on {opp.buy_market} at ${opp.buy_price:,.4f}")
            lines.append(f"  Sell on {opp.sell_market} at ${opp.sell_price:,.4f}")
            lines.append(f"  Spread: {opp.spread_percentage:.2f}%")
            lines.append(f"  Volume constraint: ${opp.volume_constraint:,.2f}")
            lines.append(f"  Estimated profit: ${opp.estimated_profit_usd:,.2f}")
        return "\n".join(lines)

    def print_summary(self, summary: CollectionSummary) -> None:
        """Write the summary panel."""
        self._output.write("\n" + self.render_summary(summary) + "\n")
        self._output.flush()

    def print_opportunities(self, opportunities: Sequence[SpreadOpportunity], limit: int = 5) -> None:
        """Write the opportunity report."""
        self._output.write(self.render_opportunities(opportunities, limit) + "\n")
        self._output.flush()
