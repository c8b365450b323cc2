"""
Unit tests for environment settings.
"""

import pytest

from arbcollect.config.settings import Settings


CREDENTIAL_VARS = (
    "BINANCE_API_KEY",
    "BINANCE_SECRET_KEY",
    "BYBIT_API_KEY",
    "BYBIT_SECRET_KEY",
    "KRAKEN_API_KEY",
    "KRAKEN_SECRET_KEY",
    "OKX_API_KEY",
    "OKX_SECRET_KEY",
    "OKX_PASSPHRASE",
    "DATABASE_URL",
    "VERCEL",
    "SERVERLESS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove credentials inherited from the test environment."""
    for var in CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)


def _settings() -> Settings:
    return Settings(_env_file=None)


class TestExchangeConfigs:
    """Tests for Settings.exchange_configs."""

    def test_zonda_always_included(self) -> None:
        """Test Zonda is configured without any variables."""
        configs = _settings().exchange_configs()

        assert list(configs) == ["Zonda"]

    def test_complete_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test exchanges with all variables set are included."""
        monkeypatch.setenv("BINANCE_API_KEY", "bk")
        monkeypatch.setenv("BINANCE_SECRET_KEY", "bs")
        monkeypatch.setenv("OKX_API_KEY", "ok")
        monkeypatch.setenv("OKX_SECRET_KEY", "os")
        monkeypatch.setenv("OKX_PASSPHRASE", "op")

        configs = _settings().exchange_configs()

        assert set(configs) == {"Zonda", "Binance", "OKX"}
        assert configs["Binance"].api_key == "bk"
        assert configs["OKX"].passphrase == "op"

    def test_partial_credentials_excluded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a missing or empty variable leaves the exchange out."""
        monkeypatch.setenv("KRAKEN_API_KEY", "kk")
        monkeypatch.setenv("BYBIT_API_KEY", "yk")
        monkeypatch.setenv("BYBIT_SECRET_KEY", "")
        monkeypatch.setenv("OKX_API_KEY", "ok")
        monkeypatch.setenv("OKX_SECRET_KEY", "os")

        configs = _settings().exchange_configs()

        assert set(configs) == {"Zonda"}

    def test_secrets_not_in_repr(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test credentials never appear in repr."""
        monkeypatch.setenv("BINANCE_API_KEY", "very-secret-key")
        monkeypatch.setenv("BINANCE_SECRET_KEY", "very-secret-secret")

        settings = _settings()

        assert "very-secret" not in repr(settings)
        assert "very-secret" not in repr(settings.exchange_configs()["Binance"])


class TestSettings:
    """Tests for other settings."""

    def test_defaults(self) -> None:
        """Test collection defaults."""
        settings = _settings()

        assert settings.lookback_ms == 300_000
        assert settings.interval_ms == 60_000
        assert settings.order_book_depth == 5
        assert settings.dsn == ""
        assert not settings.serverless

    def test_vercel_marker(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test VERCEL=1 enables serverless mode."""
        monkeypatch.setenv("VERCEL", "1")

        assert _settings().serverless

    def test_invalid_depth(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test out-of-range values are rejected."""
        monkeypatch.setenv("ORDER_BOOK_DEPTH", "0")

        with pytest.raises(ValueError):
            _settings()
