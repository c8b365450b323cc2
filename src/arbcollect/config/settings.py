"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arbcollect.config.constants import (
    BINANCE,
    BYBIT,
    DEFAULT_INTERVAL_MS,
    DEFAULT_LOOKBACK_MS,
    DEFAULT_ORDER_BOOK_DEPTH,
    DEFAULT_PACING_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    KRAKEN,
    OKX,
    ZONDA,
)
from arbcollect.core.types import ExchangeConfig


def _secret(value: SecretStr | None) -> str:
    """Unwrap an optional secret, treating None as empty."""
    return value.get_secret_value() if value is not None else ""


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Exchange credentials are optional: an exchange with any credential
    missing is simply not configured.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Exchange Credentials
    # =========================================================================

    binance_api_key: SecretStr | None = Field(default=None)
    binance_secret_key: SecretStr | None = Field(default=None)

    bybit_api_key: SecretStr | None = Field(default=None)
    bybit_secret_key: SecretStr | None = Field(default=None)

    kraken_api_key: SecretStr | None = Field(default=None)
    kraken_secret_key: SecretStr | None = Field(default=None)

    okx_api_key: SecretStr | None = Field(default=None)
    okx_secret_key: SecretStr | None = Field(default=None)
    okx_passphrase: SecretStr | None = Field(default=None)

    # =========================================================================
    # Storage
    # =========================================================================

    database_url: SecretStr | None = Field(
        default=None,
        description="Postgres DSN of the hosted database",
    )

    # =========================================================================
    # Collection Window
    # =========================================================================

    lookback_ms: int = Field(
        default=DEFAULT_LOOKBACK_MS,
        gt=0,
        description="Trailing window backfilled on each run",
    )

    interval_ms: int = Field(
        default=DEFAULT_INTERVAL_MS,
        gt=0,
        description="Spacing between samples inside the window",
    )

    order_book_depth: int = Field(
        default=DEFAULT_ORDER_BOOK_DEPTH,
        ge=1,
        le=100,
        description="Price levels collected on each side of the book",
    )

    pacing_delay_ms: int = Field(
        default=DEFAULT_PACING_DELAY_MS,
        ge=0,
        description="Delay between consecutive samples of one series",
    )

    request_timeout_s: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_S,
        gt=0,
        description="Timeout for a single HTTP request",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: str | None = Field(default=None)

    serverless: bool = Field(
        default=False,
        validation_alias=AliasChoices("serverless", "vercel"),
        description="Exit the process explicitly when running on a serverless platform",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("serverless", mode="before")
    @classmethod
    def validate_serverless(cls, v: object) -> object:
        """Treat any non-empty platform marker (e.g. VERCEL=1) as enabled."""
        if isinstance(v, str) and v.strip() and v.strip().lower() not in ("0", "false", "no"):
            return True
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def dsn(self) -> str:
        """Database DSN as plain string."""
        return _secret(self.database_url)

    def exchange_configs(self) -> dict[str, ExchangeConfig]:
        """
        Build credentials for every configured exchange.

        An exchange is included only when all of its required variables
        are present and non-empty. Zonda uses public endpoints only and is
        always included.

        Returns:
            Mapping of market name to exchange configuration.
        """
        configs: dict[str, ExchangeConfig] = {ZONDA: ExchangeConfig()}

        pairs = {
            BINANCE: (self.binance_api_key, self.binance_secret_key),
            BYBIT: (self.bybit_api_key, self.bybit_secret_key),
            KRAKEN: (self.kraken_api_key, self.kraken_secret_key),
        }
        for name, (key, secret) in pairs.items():
            if _secret(key) and _secret(secret):
                configs[name] = ExchangeConfig(api_key=_secret(key), secret_key=_secret(secret))

        if _secret(self.okx_api_key) and _secret(self.okx_secret_key) and _secret(self.okx_passphrase):
            configs[OKX] = ExchangeConfig(
                api_key=_secret(self.okx_api_key),
                secret_key=_secret(self.okx_secret_key),
                passphrase=_secret(self.okx_passphrase),
            )

        return configs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
