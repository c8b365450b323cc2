"""
Entry point for the collector.

Usage:
    python -m arbcollect [collect|analyze]
    arbcollect collect  # if installed via pip
"""

import argparse
import asyncio
import logging
import sys
from typing import TextIO

from arbcollect.collectors import collector_factories
from arbcollect.config.constants import ANALYSIS_WINDOW_MS
from arbcollect.config.settings import Settings, get_settings
from arbcollect.core.errors import FatalError, StorageError
from arbcollect.core.orchestrator import create_orchestrator
from arbcollect.storage.database import Database
from arbcollect.strategy.spreads import find_opportunities
from arbcollect.telemetry.logger import setup_logging
from arbcollect.telemetry.metrics import MetricsCollector
from arbcollect.telemetry.reporter import CLIReporter


logger = logging.getLogger("arbcollect")


async def run_collect(settings: Settings, output: TextIO | None = None) -> int:
    """
    Backfill the lookback window for every active pair.

    Returns:
        Exit code: 0 when the run completed, 1 when it was aborted.
    """
    metrics = MetricsCollector()
    reporter = CLIReporter(metrics, output=output)
    configs = settings.exchange_configs()

    logger.info(f"Configured exchanges: {', '.join(configs)}")

    db = Database(settings.dsn)
    try:
        await db.connect()
    except StorageError as e:
        logger.error(f"Cannot open database: {e}")
        return 1

    try:
        async with create_orchestrator(
            db,
            configs,
            collector_factories(settings),
            lookback_ms=settings.lookback_ms,
            interval_ms=settings.interval_ms,
            depth=settings.order_book_depth,
            metrics=metrics,
        ) as orchestrator:
            init_errors = await orchestrator.initialize()
            summary = await orchestrator.collect(init_errors)
    except FatalError as e:
        logger.error(f"Collection aborted: {e}")
        return 1
    finally:
        await db.close()

    reporter.print_summary(summary)
    return 0


async def run_analyze(settings: Settings, output: TextIO | None = None) -> int:
    """
    Detect spreads in the most recent prices and store them.

    Returns:
        Exit code.
    """
    reporter = CLIReporter(output=output)

    try:
        async with Database(settings.dsn) as db:
            prices = await db.fetch_recent_prices(ANALYSIS_WINDOW_MS)
            logger.info(f"Analyzing {len(prices)} price points")

            opportunities = find_opportunities(prices)
            reporter.print_opportunities(opportunities)

            if opportunities:
                saved = await db.insert_opportunities(opportunities)
                logger.info(f"Saved {saved} opportunities")
    except StorageError as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    return 0


COMMANDS = {
    "collect": run_collect,
    "analyze": run_analyze,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="arbcollect",
        description="Collect exchange price and order book snapshots.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="collect",
        choices=sorted(COMMANDS),
        help="collect snapshots (default) or analyze stored prices",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from arbcollect import __version__

    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        print("\nMake sure your environment or .env file sets:")
        print("  DATABASE_URL=postgresql://...")
        print("  and credentials for each exchange to collect from")
        return 1

    async_logger = setup_logging(level=settings.log_level, log_file=settings.log_file)
    logger.info(f"arbcollect v{__version__}: {args.command}")

    try:
        code = asyncio.run(COMMANDS[args.command](settings))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        code = 1
    except Exception:
        logger.exception("Unhandled error")
        code = 1
    finally:
        async_logger.stop()

    # Serverless runtimes keep the process alive unless told to exit
    if settings.serverless:
        sys.exit(code)

    return code


if __name__ == "__main__":
    sys.exit(main())
