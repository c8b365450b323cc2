"""
Collector error taxonomy.

Only FatalError is meant to reach the process boundary; every other
error is caught per exchange or per pair and turned into a counter.
"""


class CollectorError(Exception):
    """Base exception for collector errors."""

    def __init__(self, message: str, exchange: str | None = None) -> None:
        super().__init__(message)
        self.exchange = exchange


class ConfigurationError(CollectorError):
    """Required credentials are missing."""

    pass


class InitializationError(CollectorError):
    """Instrument list could not be loaded."""

    pass


class DataUnavailableError(CollectorError):
    """The exchange returned no data for a resolved pair."""

    pass


class ExchangeAPIError(CollectorError):
    """The exchange reported an error (HTTP status or embedded payload)."""

    def __init__(
        self,
        message: str,
        exchange: str | None = None,
        code: int | str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, exchange)
        self.code = code
        self.status = status


class NetworkError(CollectorError):
    """Transport failure or unparseable response."""

    pass


class StorageError(CollectorError):
    """A persistence read or write failed."""

    pass


class FatalError(CollectorError):
    """The run cannot proceed (no collectors, or no eligible pairs)."""

    pass
