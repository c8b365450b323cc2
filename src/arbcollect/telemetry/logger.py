"""
Queue-based logging setup.

Log records are queued by the calling coroutine and written by a
background listener thread, so slow stdout or file I/O never stalls
the event loop between exchange requests.
"""

import logging
import sys
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from arbcollect.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("aiohttp", "asyncio", "asyncpg")


class UTCFormatter(logging.Formatter):
    """Formatter with UTC timestamps and millisecond precision."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        return f"{stamp.strftime(datefmt or LOG_DATE_FORMAT)}.{int(record.msecs):03d}Z"


def _build_handlers(console_level: int, log_file: Path | None) -> list[logging.Handler]:
    """Console handler at `console_level`, plus a DEBUG file handler when asked."""
    formatter = UTCFormatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, encoding="utf-8")
        to_file.setLevel(logging.DEBUG)
        handlers.append(to_file)

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


class AsyncLogger:
    """
    Queue-backed logger for one logger namespace.

    Handlers run on the listener thread; callers only enqueue records.
    Usable as a context manager around a run.
    """

    def __init__(self, name: str, level: int = logging.INFO, log_file: Path | None = None) -> None:
        self.name = name
        self.level = level
        self.log_file = log_file
        self._records: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._enqueuer: QueueHandler | None = None
        self._listener: QueueListener | None = None

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger(self.name)

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def start(self) -> None:
        """Attach the queue handler and start the listener. Idempotent."""
        if self.is_running:
            return

        self._listener = QueueListener(
            self._records,
            *_build_handlers(self.level, self.log_file),
            respect_handler_level=True,
        )
        self._enqueuer = QueueHandler(self._records)

        target = self.logger
        target.addHandler(self._enqueuer)
        # The file handler wants DEBUG records even when the console does not
        target.setLevel(logging.DEBUG if self.log_file else self.level)
        self._listener.start()

    def stop(self) -> None:
        """Drain queued records to the handlers and detach."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        if self._enqueuer is not None:
            self.logger.removeHandler(self._enqueuer)
            self._enqueuer = None

    def __enter__(self) -> "AsyncLogger":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> AsyncLogger:
    """
    Route the `arbcollect` namespace through a started AsyncLogger.

    Handlers left on the root logger are removed so records are not
    printed twice. Call stop() on the result before exit to flush.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    async_logger = AsyncLogger("arbcollect", numeric_level, Path(log_file) if log_file else None)
    async_logger.start()
    return async_logger
