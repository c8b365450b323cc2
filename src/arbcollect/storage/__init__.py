"""Postgres persistence for collected snapshots."""

from arbcollect.storage.database import Database, entry_rows


__all__ = ["Database", "entry_rows"]
