"""
Postgres persistence gateway.

Thin asyncpg wrapper over the tables the collector reads and writes:
- market_pairs / markets: active pairs to collect (read)
- price_data: one row per price snapshot
- order_books / order_book_entries: snapshot headers and their levels
- arbitrage_opportunities: output of spread analysis

Every asyncpg or connection failure is re-raised as StorageError.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import asyncpg

from arbcollect.core.errors import StorageError
from arbcollect.core.types import (
    BookSide,
    Market,
    MarketPair,
    OrderBookSnapshot,
    PriceSnapshot,
    SpreadOpportunity,
    StoredPrice,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Queries
# =============================================================================

SELECT_ACTIVE_MARKET_PAIRS = """
    SELECT mp.id, mp.market_id, mp.coin_id, mp.base_currency, mp.quote_currency,
           mp.is_active, m.id AS m_id, m.name AS market_name, m.is_active AS market_active
    FROM market_pairs mp
    JOIN markets m ON m.id = mp.market_id
    WHERE mp.is_active = true
"""

INSERT_PRICE_DATA = """
    INSERT INTO price_data (market_pair_id, timestamp, price, volume_24h, bid, ask)
    VALUES ($1, $2, $3, $4, $5, $6)
"""

INSERT_ORDER_BOOKS = """
    INSERT INTO order_books (market_pair_id, timestamp, last_update_id)
    SELECT $1, book.ts, book.update_id
    FROM unnest($2::timestamptz[], $3::text[]) WITH ORDINALITY AS book(ts, update_id, position)
    ORDER BY book.position
    RETURNING id
"""

INSERT_ORDER_BOOK_ENTRY = """
    INSERT INTO order_book_entries (order_book_id, side, price, quantity, total, position)
    VALUES ($1, $2, $3, $4, $5, $6)
"""

SELECT_LATEST_PRICE_TIMESTAMP = "SELECT max(timestamp) FROM price_data"

SELECT_PRICES_SINCE = """
    SELECT pd.market_pair_id, pd.price, pd.volume_24h, pd.timestamp,
           mp.coin_id, mp.base_currency, mp.quote_currency, m.name AS market_name
    FROM price_data pd
    JOIN market_pairs mp ON mp.id = pd.market_pair_id
    JOIN markets m ON m.id = mp.market_id
    WHERE pd.timestamp >= $1 AND pd.timestamp <= $2
    ORDER BY pd.timestamp DESC
"""

INSERT_OPPORTUNITY = """
    INSERT INTO arbitrage_opportunities (
        buy_market_pair_id, sell_market_pair_id, coin_id, timestamp,
        buy_price, sell_price, spread_percentage, volume_constraint,
        estimated_profit_usd, status
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
"""


def entry_rows(order_book_id: Any, book: OrderBookSnapshot) -> list[tuple[Any, ...]]:
    """
    Level rows for one order book.

    Position is the level's index within its side, 0 being the best price.
    """
    rows: list[tuple[Any, ...]] = []
    for side, levels in ((BookSide.BID, book.bids), (BookSide.ASK, book.asks)):
        for position, (price, quantity) in enumerate(levels):
            rows.append((order_book_id, side.value, price, quantity, price * quantity, position))
    return rows


class Database:
    """
    Connection pool and queries for one Postgres database.

    Usage:
        db = Database(dsn)
        await db.connect()
        pairs = await db.fetch_active_market_pairs()
        await db.close()
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 60.0,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            dsn: Postgres connection string.
            min_size: Minimum pool connections.
            max_size: Maximum pool connections.
            command_timeout: Per-statement timeout in seconds.
        """
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        """Check if the pool is open."""
        return self._pool is not None

    async def connect(self) -> None:
        """
        Open the connection pool.

        Raises:
            StorageError: If the database cannot be reached.
        """
        if self._pool is not None:
            return

        if not self._dsn:
            raise StorageError("DATABASE_URL is not set")

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                server_settings={"application_name": "arbcollect"},
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Database connection failed: {e}") from e

        logger.info("Database pool opened")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a pooled connection, normalizing errors."""
        if self._pool is None:
            raise StorageError("Database is not connected")

        try:
            async with self._pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise StorageError(f"Database operation failed: {e}") from e

    # =========================================================================
    # Market Pairs
    # =========================================================================

    async def fetch_active_market_pairs(self) -> list[MarketPair]:
        """
        Load active market pairs joined with their market.

        Returns:
            Pairs whose own `is_active` flag is set; market activity is
            left for the caller to check.
        """
        async with self._connection() as conn:
            rows = await conn.fetch(SELECT_ACTIVE_MARKET_PAIRS)

        return [
            MarketPair(
                id=row["id"],
                market_id=row["market_id"],
                coin_id=row["coin_id"],
                base_currency=row["base_currency"],
                quote_currency=row["quote_currency"],
                is_active=row["is_active"],
                market=Market(
                    id=row["m_id"],
                    name=row["market_name"],
                    is_active=row["market_active"],
                ),
            )
            for row in rows
        ]

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def insert_price_points(
        self, market_pair_id: int, snapshots: Sequence[PriceSnapshot]
    ) -> int:
        """
        Bulk insert price snapshots for one pair.

        Returns:
            Number of rows written.
        """
        if not snapshots:
            return 0

        rows = [
            (market_pair_id, s.timestamp, s.price, s.volume24h, s.bid, s.ask)
            for s in snapshots
        ]
        async with self._connection() as conn:
            await conn.executemany(INSERT_PRICE_DATA, rows)

        return len(rows)

    async def insert_order_books(
        self, market_pair_id: int, books: Sequence[OrderBookSnapshot]
    ) -> list[Any]:
        """
        Insert order book headers for one pair in a single statement.

        Returns:
            Generated ids, index-aligned with `books`.

        Raises:
            StorageError: If the database returns a different number of ids.
        """
        if not books:
            return []

        async with self._connection() as conn:
            rows = await conn.fetch(
                INSERT_ORDER_BOOKS,
                market_pair_id,
                [book.timestamp for book in books],
                [book.last_update_id for book in books],
            )

        if len(rows) != len(books):
            raise StorageError(f"Inserted {len(rows)} order book headers for {len(books)} snapshots")
        return [row["id"] for row in rows]

    async def insert_order_book_entries(
        self, order_book_ids: Sequence[Any], books: Sequence[OrderBookSnapshot]
    ) -> int:
        """
        Bulk insert levels for previously inserted headers.

        Args:
            order_book_ids: Header ids as returned by insert_order_books.
            books: Snapshots in the same order as `order_book_ids`.

        Returns:
            Number of rows written.
        """
        if len(order_book_ids) != len(books):
            raise StorageError(
                f"Got {len(order_book_ids)} order book ids for {len(books)} snapshots"
            )

        rows = [
            row
            for book_id, book in zip(order_book_ids, books, strict=True)
            for row in entry_rows(book_id, book)
        ]
        if not rows:
            return 0

        async with self._connection() as conn:
            await conn.executemany(INSERT_ORDER_BOOK_ENTRY, rows)

        return len(rows)

    # =========================================================================
    # Analysis
    # =========================================================================

    async def fetch_recent_prices(self, window_ms: int) -> list[StoredPrice]:
        """
        Price rows within `window_ms` before the latest stored timestamp.

        Returns:
            Rows newest first; empty if no prices are stored.
        """
        async with self._connection() as conn:
            latest = await conn.fetchval(SELECT_LATEST_PRICE_TIMESTAMP)
            if latest is None:
                return []
            rows = await conn.fetch(
                SELECT_PRICES_SINCE, latest - timedelta(milliseconds=window_ms), latest
            )

        return [
            StoredPrice(
                market_pair_id=row["market_pair_id"],
                coin_id=row["coin_id"],
                base_currency=row["base_currency"],
                quote_currency=row["quote_currency"],
                market_name=row["market_name"],
                price=float(row["price"]),
                volume24h=float(row["volume_24h"] or 0.0),
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    async def insert_opportunities(self, opportunities: Sequence[SpreadOpportunity]) -> int:
        """
        Bulk insert detected opportunities.

        Returns:
            Number of rows written.
        """
        if not opportunities:
            return 0

        rows = [
            (
                o.buy_market_pair_id,
                o.sell_market_pair_id,
                o.coin_id,
                o.timestamp,
                o.buy_price,
                o.sell_price,
                o.spread_percentage,
                o.volume_constraint,
                o.estimated_profit_usd,
                o.status,
            )
            for o in opportunities
        ]
        async with self._connection() as conn:
            await conn.executemany(INSERT_OPPORTUNITY, rows)

        return len(rows)

    async def __aenter__(self) -> "Database":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
