"""Telemetry module for logging, metrics, and reporting."""

from arbcollect.telemetry.logger import AsyncLogger, setup_logging
from arbcollect.telemetry.metrics import MetricsCollector
from arbcollect.telemetry.reporter import CLIReporter


__all__ = [
    "AsyncLogger",
    "CLIReporter",
    "MetricsCollector",
    "setup_logging",
]
