"""
Cross-exchange market data collector.

Backfills price and order book snapshots from Binance, Bybit, Kraken,
OKX and Zonda into Postgres, and screens the stored prices for
cross-exchange spreads.
"""

__version__ = "1.0.0"
