"""
Unit tests for SymbolMapper.

Tests aliasing, forward/reverse lookup and the concatenation fallback.
"""

import pytest

from arbcollect.config.constants import KRAKEN_SYMBOL_ALIASES
from arbcollect.exchange.symbols import SymbolMapper, pair_key


class TestPairKey:
    """Tests for pair_key."""

    def test_uppercases(self) -> None:
        """Test canonical keys are upper case."""
        assert pair_key("btc", "usdt") == "BTC/USDT"


class TestSymbolMapper:
    """Tests for SymbolMapper."""

    @pytest.fixture
    def kraken_mapper(self) -> SymbolMapper:
        """Kraken-style mapper holding only XBT/USD."""
        mapper = SymbolMapper("Kraken", aliases=KRAKEN_SYMBOL_ALIASES)
        mapper.add_pair("XBT", "USD", "XXBTZUSD")
        return mapper

    def test_alias_applied_before_lookup(self, kraken_mapper: SymbolMapper) -> None:
        """Test BTC/USDT resolves to the XBT/USD pair via BTC->XBT and USDT->USD."""
        assert kraken_mapper.resolve("BTC", "USDT") == "XXBTZUSD"

    def test_unaliased_key_still_found(self, kraken_mapper: SymbolMapper) -> None:
        """Test the listed spelling resolves too."""
        assert kraken_mapper.lookup("XBT", "USD") == "XXBTZUSD"

    def test_reverse_lookup(self, kraken_mapper: SymbolMapper) -> None:
        """Test native id maps back to the listed pair."""
        assert kraken_mapper.canonical("XXBTZUSD") == "XBT/USD"
        assert kraken_mapper.canonical("UNKNOWN") is None

    def test_fallback_concatenation(self) -> None:
        """Test unmapped pairs degrade to aliased base + quote."""
        mapper = SymbolMapper("Binance")

        assert mapper.resolve("btc", "usdt") == "BTCUSDT"
        assert not mapper.has_pair("BTC", "USDT")

    def test_fallback_uses_separator_and_aliases(self) -> None:
        """Test the fallback applies aliases and the separator."""
        dashed = SymbolMapper("OKX", separator="-")
        aliased = SymbolMapper("Kraken", aliases=KRAKEN_SYMBOL_ALIASES)

        assert dashed.resolve("ETH", "USDT") == "ETH-USDT"
        assert aliased.resolve("DOGE", "USDT") == "XDGUSD"

    def test_alias_key_does_not_change_reverse(self, kraken_mapper: SymbolMapper) -> None:
        """Test extra forward keys keep the first reverse mapping."""
        kraken_mapper.add_alias_key("BTC", "USD", "XXBTZUSD")

        assert kraken_mapper.lookup("BTC", "USD") == "XXBTZUSD"
        assert kraken_mapper.canonical("XXBTZUSD") == "XBT/USD"

    def test_membership_and_clear(self, kraken_mapper: SymbolMapper) -> None:
        """Test container protocol and clearing."""
        assert "xbt/usd" in kraken_mapper
        assert len(kraken_mapper) == 1
        assert kraken_mapper.native_ids == {"XXBTZUSD"}

        kraken_mapper.clear()

        assert len(kraken_mapper) == 0
        assert kraken_mapper.lookup("XBT", "USD") is None
