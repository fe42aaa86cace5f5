"""SQLite storage adapter.

Implements the core DedupStorePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.errors import StoreError


class SQLiteDedupStore:
    """Thin SQLite wrapper that satisfies the DedupStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the notifications table if it does not exist."""

        try:
            with closing(self._connect()) as conn, conn:
                # notifications records every delivered (subscriber, link, keyword).
                # Fields:
                # - key: email + link + keyword (PRIMARY KEY)
                # - value: 1 once the mail transport accepted the message
                # - notified_at: commit timestamp, used for optional TTL cleanup
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS notifications (
                        key TEXT PRIMARY KEY,
                        value INTEGER NOT NULL,
                        notified_at TIMESTAMP NOT NULL
                    )
                    """
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to initialize {self._db_path}: {exc}") from exc

    def get(self, key: str) -> Optional[bool]:
        """Return the stored flag for a key, or None when it was never written."""

        try:
            with closing(self._connect()) as conn, conn:
                row = conn.execute(
                    "SELECT value FROM notifications WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Lookup failed for {key!r}: {exc}") from exc
        return bool(row["value"]) if row else None

    def put(self, key: str, value: bool) -> None:
        """Upsert the flag for a key."""

        now = datetime.now(timezone.utc)
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    """
                    INSERT INTO notifications (key, value, notified_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (key, int(value), now.isoformat()),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Write failed for {key!r}: {exc}") from exc

    def cleanup(self, ttl_days: int) -> int:
        """Delete records older than the TTL and return the number removed."""

        cutoff = datetime.now(timezone.utc) - timedelta(days=ttl_days)
        try:
            with closing(self._connect()) as conn, conn:
                cur = conn.execute(
                    "DELETE FROM notifications WHERE notified_at < ?",
                    (cutoff.isoformat(),),
                )
                return cur.rowcount
        except sqlite3.Error as exc:
            raise StoreError(f"Cleanup failed: {exc}") from exc

    def count(self) -> int:
        with closing(self._connect()) as conn, conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM notifications").fetchone()
        return int(row["total"])
