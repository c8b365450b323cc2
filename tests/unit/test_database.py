"""
Unit tests for the Postgres gateway.

The asyncpg pool is replaced by a mock; SQL text is not executed.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from arbcollect.core.errors import StorageError
from arbcollect.core.types import OrderBookSnapshot, PriceSnapshot, SpreadOpportunity
from arbcollect.storage import Database, entry_rows
from arbcollect.storage.database import (
    INSERT_ORDER_BOOKS,
    INSERT_ORDER_BOOK_ENTRY,
    INSERT_PRICE_DATA,
)


TS = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _book(update_id: str = "1") -> OrderBookSnapshot:
    return OrderBookSnapshot(
        last_update_id=update_id,
        timestamp=TS,
        bids=((100.0, 2.0), (99.0, 1.0)),
        asks=((101.0, 0.5),),
    )


@pytest.fixture
def conn() -> AsyncMock:
    """Connection double."""
    return AsyncMock()


@pytest.fixture
def db(conn: AsyncMock) -> Database:
    """Database with a mocked pool handing out `conn`."""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.acquire.return_value.__aexit__.return_value = False
    pool.close = AsyncMock()

    database = Database("postgresql://localhost/test")
    database._pool = pool
    return database


class TestEntryRows:
    """Tests for entry_rows."""

    def test_bids_then_asks_with_positions(self) -> None:
        """Test rows carry side, notional and per-side position."""
        rows = entry_rows(42, _book())

        assert rows == [
            (42, "bid", 100.0, 2.0, 200.0, 0),
            (42, "bid", 99.0, 1.0, 99.0, 1),
            (42, "ask", 101.0, 0.5, 50.5, 0),
        ]

    def test_empty_book(self) -> None:
        """Test an empty book yields no rows."""
        assert entry_rows(1, OrderBookSnapshot("1", TS, (), ())) == []


class TestConnection:
    """Tests for pool handling."""

    @pytest.mark.asyncio
    async def test_connect_without_dsn(self) -> None:
        """Test an empty DSN is rejected before connecting."""
        with pytest.raises(StorageError, match="DATABASE_URL"):
            await Database("").connect()

    @pytest.mark.asyncio
    async def test_not_connected(self) -> None:
        """Test queries before connect raise StorageError."""
        with pytest.raises(StorageError, match="not connected"):
            await Database("postgresql://localhost/test").fetch_active_market_pairs()

    @pytest.mark.asyncio
    async def test_driver_errors_wrapped(self, db: Database, conn: AsyncMock) -> None:
        """Test connection-level failures surface as StorageError."""
        conn.fetch.side_effect = OSError("connection reset")

        with pytest.raises(StorageError, match="connection reset"):
            await db.fetch_active_market_pairs()

    @pytest.mark.asyncio
    async def test_close(self, db: Database) -> None:
        """Test close releases the pool once."""
        pool = db._pool

        await db.close()
        await db.close()

        pool.close.assert_awaited_once()
        assert not db.is_connected


class TestQueries:
    """Tests for reads and writes."""

    @pytest.mark.asyncio
    async def test_fetch_active_market_pairs(self, db: Database, conn: AsyncMock) -> None:
        """Test rows map to pairs with their market."""
        conn.fetch.return_value = [
            {
                "id": 10,
                "market_id": 1,
                "coin_id": 3,
                "base_currency": "BTC",
                "quote_currency": "USDT",
                "is_active": True,
                "m_id": 1,
                "market_name": "Binance",
                "market_active": False,
            }
        ]

        pairs = await db.fetch_active_market_pairs()

        assert len(pairs) == 1
        assert pairs[0].symbol == "BTC/USDT"
        assert pairs[0].market.name == "Binance"
        assert not pairs[0].is_eligible

    @pytest.mark.asyncio
    async def test_insert_price_points(self, db: Database, conn: AsyncMock) -> None:
        """Test one executemany call with one row per snapshot."""
        snapshots = [PriceSnapshot(100.0, 5.0, 99.0, 101.0, TS)] * 3

        written = await db.insert_price_points(7, snapshots)

        assert written == 3
        conn.executemany.assert_awaited_once()
        sql, rows = conn.executemany.await_args.args
        assert sql == INSERT_PRICE_DATA
        assert rows[0] == (7, TS, 100.0, 5.0, 99.0, 101.0)

    @pytest.mark.asyncio
    async def test_insert_nothing(self, db: Database, conn: AsyncMock) -> None:
        """Test empty inputs skip the database."""
        assert await db.insert_price_points(7, []) == 0
        assert await db.insert_opportunities([]) == 0
        conn.executemany.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_order_books_then_entries(self, db: Database, conn: AsyncMock) -> None:
        """Test headers go in one statement and their ids feed the entry rows."""
        conn.fetch.return_value = [{"id": 501}, {"id": 502}]
        books = [_book("a"), _book("b")]

        ids = await db.insert_order_books(7, books)
        written = await db.insert_order_book_entries(ids, books)

        assert ids == [501, 502]
        conn.fetch.assert_awaited_once_with(INSERT_ORDER_BOOKS, 7, [TS, TS], ["a", "b"])
        conn.fetchval.assert_not_awaited()
        assert written == 6
        sql, rows = conn.executemany.await_args.args
        assert sql == INSERT_ORDER_BOOK_ENTRY
        assert [r[0] for r in rows] == [501, 501, 501, 502, 502, 502]

    @pytest.mark.asyncio
    async def test_order_books_empty(self, db: Database, conn: AsyncMock) -> None:
        """Test no snapshots means no header insert."""
        assert await db.insert_order_books(7, []) == []
        conn.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_order_books_short_result(self, db: Database, conn: AsyncMock) -> None:
        """Test a header count mismatch is a storage error."""
        conn.fetch.return_value = [{"id": 501}]

        with pytest.raises(StorageError):
            await db.insert_order_books(7, [_book("a"), _book("b")])

    @pytest.mark.asyncio
    async def test_entries_length_mismatch(self, db: Database) -> None:
        """Test ids and books must align."""
        with pytest.raises(StorageError):
            await db.insert_order_book_entries([1], [_book(), _book()])

    @pytest.mark.asyncio
    async def test_fetch_recent_prices_empty(self, db: Database, conn: AsyncMock) -> None:
        """Test no stored prices yields nothing."""
        conn.fetchval.return_value = None

        assert await db.fetch_recent_prices(300_000) == []
        conn.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_recent_prices(self, db: Database, conn: AsyncMock) -> None:
        """Test the window is anchored at the latest stored timestamp."""
        conn.fetchval.return_value = TS
        conn.fetch.return_value = [
            {
                "market_pair_id": 1,
                "coin_id": 3,
                "base_currency": "BTC",
                "quote_currency": "USDT",
                "market_name": "Kraken",
                "price": "42000.5",
                "volume_24h": None,
                "timestamp": TS,
            }
        ]

        prices = await db.fetch_recent_prices(300_000)

        _, since, until = conn.fetch.await_args.args
        assert (until - since).total_seconds() == 300
        assert prices[0].price == 42000.5
        assert prices[0].volume24h == 0.0

    @pytest.mark.asyncio
    async def test_insert_opportunities(self, db: Database, conn: AsyncMock) -> None:
        """Test opportunities are written with their status."""
        opp = SpreadOpportunity(
            buy_market_pair_id=1,
            sell_market_pair_id=2,
            coin_id=3,
            symbol="BTC/USDT",
            buy_market="Binance",
            sell_market="Kraken",
            timestamp=TS,
            buy_price=100.0,
            sell_price=101.0,
            spread_percentage=1.0,
            volume_constraint=500.0,
            estimated_profit_usd=5.0,
        )

        assert await db.insert_opportunities([opp]) == 1
        _, rows = conn.executemany.await_args.args
        assert rows[0][-1] == "identified"
