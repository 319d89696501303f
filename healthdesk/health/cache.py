"""Snapshot cache — SQLite-backed, group-scoped, minute-granularity lifetimes.

Values are stored as text. The engine only ever writes JSON strings here, so
reading a cached snapshot back never reconstructs arbitrary objects.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).parent.parent.parent / "data" / "cache.db"


def ttl_to_minutes(ttl_seconds: int) -> int:
    """Convert a TTL in seconds to whole store minutes (floor, at least 1)."""
    return max(1, int(ttl_seconds) // 60)


class CacheStore:
    """Key/value cache with per-entry lifetime, partitioned into groups.

    Concurrent writers are last-writer-wins; there is no locking around a
    read-miss-recompute-store cycle.
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path or DB_PATH)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    def _init_db(self) -> None:
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                grp TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                stored_at REAL NOT NULL,
                expires_at REAL NOT NULL,
                PRIMARY KEY (grp, key)
            );
        """)
        conn.commit()

    def get(self, key: str, group: str) -> str | None:
        """Return the stored value, or None when absent or expired."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT value, expires_at FROM cache_entries WHERE grp = ? AND key = ?",
            (group, key),
        ).fetchone()
        if row is None:
            return None
        if row["expires_at"] <= self._clock():
            conn.execute("DELETE FROM cache_entries WHERE grp = ? AND key = ?", (group, key))
            conn.commit()
            return None
        return row["value"]

    def store(self, value: str, key: str, group: str, lifetime_minutes: int) -> None:
        now = self._clock()
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO cache_entries (grp, key, value, stored_at, expires_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (group, key, value, now, now + lifetime_minutes * 60),
        )
        conn.commit()

    def clean(self, group: str) -> int:
        """Remove every entry in ``group``. Returns the number removed."""
        conn = self._get_conn()
        cursor = conn.execute("DELETE FROM cache_entries WHERE grp = ?", (group,))
        conn.commit()
        logger.info("Cleared %d cache entries from group %s", cursor.rowcount, group)
        return cursor.rowcount

    def count(self, group: str | None = None) -> int:
        conn = self._get_conn()
        if group is None:
            row = conn.execute("SELECT COUNT(*) FROM cache_entries").fetchone()
        else:
            row = conn.execute(
                "SELECT COUNT(*) FROM cache_entries WHERE grp = ?", (group,),
            ).fetchone()
        return int(row[0])

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
