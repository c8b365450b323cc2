"""
Unit tests for run metrics and terminal reports.
"""

import io
from datetime import UTC, datetime

from arbcollect.core.types import CollectionSummary, ExchangeInitError, SpreadOpportunity
from arbcollect.telemetry import CLIReporter, MetricsCollector


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_counters(self) -> None:
        """Test counters increment and group by exchange prefix."""
        metrics = MetricsCollector()
        metrics.increment_counter("Kraken.failed")
        metrics.increment_counter("Kraken.failed")
        metrics.increment_counter("Kraken.succeeded", 3)
        metrics.increment_counter("OKX.succeeded")

        assert metrics.get_counter("Kraken.failed") == 2
        assert metrics.get_counter("missing") == 0
        assert metrics.counters_for("Kraken") == {"failed": 2, "succeeded": 3}

    def test_latency_stats(self) -> None:
        """Test aggregation over recorded durations."""
        metrics = MetricsCollector()
        for ms in (10.0, 20.0, 30.0, 40.0):
            metrics.record_latency("pair_ms", ms)

        stats = metrics.get_latency_stats("pair_ms")

        assert stats.count == 4
        assert stats.min_ms == 10.0
        assert stats.max_ms == 40.0
        assert stats.avg_ms == 25.0

    def test_empty_stats_and_reset(self) -> None:
        """Test unknown metrics are zero and reset clears everything."""
        metrics = MetricsCollector()
        metrics.increment_counter("Binance.succeeded")
        metrics.reset()

        assert metrics.get_latency_stats("pair_ms").count == 0
        assert metrics.counters == {}
        assert metrics.to_dict()["counters"] == {}


class TestCLIReporter:
    """Tests for CLIReporter."""

    def test_summary_panel(self) -> None:
        """Test counts, exchange rows and init errors are rendered."""
        metrics = MetricsCollector()
        metrics.increment_counter("Binance.succeeded", 4)
        metrics.increment_counter("Binance.failed")
        metrics.increment_counter("Kraken.skipped", 2)
        metrics.record_latency("pair_ms", 1500.0)
        summary = CollectionSummary(
            succeeded=4,
            failed=1,
            skipped=2,
            price_points=24,
            order_books=24,
            init_errors=[ExchangeInitError("Kraken", "Cannot connect")],
            duration_s=12.5,
        )

        text = CLIReporter(metrics, width=64).render_summary(summary)
        lines = text.split("\n")

        assert "COLLECTION SUMMARY" in text
        assert "Pairs succeeded:   4" in text
        assert "Failed exchanges:  1" in text
        assert "Kraken: Cannot connect" in text
        assert any(line.split() == ["║", "Binance", "4", "1", "0", "║"] for line in lines)
        assert all(len(line) == 64 for line in lines)

    def test_print_opportunities(self) -> None:
        """Test the report lists the widest spreads up to the limit."""
        opp = SpreadOpportunity(
            buy_market_pair_id=1,
            sell_market_pair_id=2,
            coin_id=1,
            symbol="BTC/USDT",
            buy_market="Binance",
            sell_market="Kraken",
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            buy_price=100.0,
            sell_price=101.0,
            spread_percentage=1.0,
            volume_constraint=500.0,
            estimated_profit_usd=5.0,
        )
        output = io.StringIO()

        CLIReporter(output=output).print_opportunities([opp] * 7, limit=2)

        text = output.getvalue()
        assert text.startswith("Found 7 opportunities")
        assert text.count("BTC/USDT:") == 2
        assert "Buy on Binance at $100.0000" in text
        assert "Spread: 1.00%" in text
