"""
Symbol and pair mapping.

Translates canonical BASE/QUOTE pairs into an exchange's native pair
identifiers, using a per-exchange alias table (e.g. BTC -> XBT on Kraken)
and the pair table loaded from the exchange's instrument list.
"""

import logging
from collections.abc import Mapping


logger = logging.getLogger(__name__)


def pair_key(base: str, quote: str) -> str:
    """Canonical BASE/QUOTE key."""
    return f"{base.upper()}/{quote.upper()}"


class SymbolMapper:
    """
    Per-collector pair table.

    Responsibilities:
    - Resolving symbol aliases before pair lookup
    - Forward lookup: BASE/QUOTE -> exchange-native pair id
    - Reverse lookup: exchange-native pair id -> BASE/QUOTE

    The table is built once during collector initialization and kept for
    the collector's lifetime.
    """

    __slots__ = ("_exchange", "_aliases", "_separator", "_pairs", "_reverse")

    def __init__(
        self,
        exchange: str,
        aliases: Mapping[str, str] | None = None,
        separator: str = "",
    ) -> None:
        """
        Initialize an empty mapper.

        Args:
            exchange: Exchange name for log context.
            aliases: Canonical symbol -> exchange symbol.
            separator: Joins base and quote in the fallback identifier.
        """
        self._exchange = exchange
        self._aliases = {k.upper(): v.upper() for k, v in (aliases or {}).items()}
        self._separator = separator
        self._pairs: dict[str, str] = {}
        self._reverse: dict[str, str] = {}

    def alias(self, symbol: str) -> str:
        """
        Exchange spelling of a canonical symbol.

        Args:
            symbol: Canonical symbol (e.g., "BTC").

        Returns:
            Aliased symbol, or the symbol itself when no alias exists.
        """
        symbol = symbol.upper()
        return self._aliases.get(symbol, symbol)

    def add_pair(self, base: str, quote: str, native: str) -> None:
        """
        Register an exchange pair.

        The first registration of a native id defines its reverse mapping.

        Args:
            base: Base symbol as listed by the exchange.
            quote: Quote symbol as listed by the exchange.
            native: Exchange pair identifier.
        """
        key = pair_key(base, quote)
        self._pairs[key] = native
        self._reverse.setdefault(native, key)

    def add_alias_key(self, base: str, quote: str, native: str) -> None:
        """Register an extra forward key without touching the reverse map."""
        self._pairs[pair_key(base, quote)] = native

    def lookup(self, symbol: str, quote: str) -> str | None:
        """
        Find the native id for a canonical pair.

        Aliases are applied to both sides before lookup; the unaliased
        spelling is tried as a second chance.

        Returns:
            Native pair identifier or None.
        """
        aliased = self._pairs.get(pair_key(self.alias(symbol), self.alias(quote)))
        if aliased is not None:
            return aliased
        return self._pairs.get(pair_key(symbol, quote))

    def resolve(self, symbol: str, quote: str) -> str:
        """
        Native id for a canonical pair, degrading to concatenation.

        Args:
            symbol: Canonical base symbol.
            quote: Canonical quote symbol.

        Returns:
            Mapped identifier, or aliased base + separator + quote when the
            pair table has no entry.
        """
        native = self.lookup(symbol, quote)
        if native is not None:
            return native

        fallback = f"{self.alias(symbol)}{self._separator}{self.alias(quote)}"
        logger.debug(f"{self._exchange}: no mapping for {pair_key(symbol, quote)}, using {fallback}")
        return fallback

    def canonical(self, native: str) -> str | None:
        """
        Reverse lookup.

        Args:
            native: Exchange pair identifier.

        Returns:
            BASE/QUOTE key as listed by the exchange, or None.
        """
        return self._reverse.get(native)

    def has_pair(self, symbol: str, quote: str) -> bool:
        """Check if a canonical pair is mapped."""
        return self.lookup(symbol, quote) is not None

    def clear(self) -> None:
        """Drop all pairs."""
        self._pairs.clear()
        self._reverse.clear()

    @property
    def native_ids(self) -> set[str]:
        """All registered exchange identifiers."""
        return set(self._reverse)

    def __contains__(self, key: str) -> bool:
        """Check if a BASE/QUOTE key is registered."""
        return key.upper() in self._pairs

    def __len__(self) -> int:
        """Get number of registered keys."""
        return len(self._pairs)
