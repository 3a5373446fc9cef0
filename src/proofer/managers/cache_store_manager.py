# src/proofer/managers/cache_store_manager.py
import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from ..database_schema import CACHE_SCHEMA_SCRIPT
from ..errors import FatalIOError
from ..model import CacheEntry

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheStoreManager:
    """
    Persistent key -> outcome store for external URL verification.

    Responsibility:
        - Owns one SQLite connection (file backed, or in-memory when no path is given).
        - Reads entries, treating entries older than the TTL as absent.
        - Upserts entries (last writer wins).

    Constraints:
        - Only the async external resolver writes to it; the lock makes
          calls from worker threads safe as well.
    """

    def __init__(
            self,
            db_path: Optional[Union[str, Path]] = None,
            ttl: Optional[timedelta] = None,
            clock: Optional[Callable[[], datetime]] = None
    ):
        self.db_path = str(db_path) if db_path else IN_MEMORY
        self.ttl = ttl
        self._clock = clock or _utcnow
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    # --- LIFECYCLE ---

    def open(self) -> "CacheStoreManager":
        if self._conn is not None:
            return self

        try:
            if self.db_path != IN_MEMORY:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
            if self.db_path != IN_MEMORY:
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
            conn.executescript(CACHE_SCHEMA_SCRIPT)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Fatal error opening cache {self.db_path}: {e}", exc_info=True)
            raise FatalIOError(f"Cannot open cache store {self.db_path}: {e}") from e

        self._conn = conn
        logger.debug("Cache store opened at: %s", self.db_path)
        return self

    def close(self) -> None:
        """Closes the connection and truncates the WAL file."""
        with self._lock:
            if self._conn is None:
                return
            try:
                if self.db_path != IN_MEMORY:
                    self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE);")
            except sqlite3.Error as e:
                logger.debug(f"Could not checkpoint cache store: {e}")
            finally:
                self._conn.close()
                self._conn = None
        logger.debug("Cache store closed: %s", self.db_path)

    def __enter__(self) -> "CacheStoreManager":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.open()
        return self._conn

    # --- ENTRIES ---

    def is_expired(self, entry: CacheEntry) -> bool:
        if self.ttl is None:
            return False
        checked_at = entry.checked_at
        if checked_at.tzinfo is None:
            checked_at = checked_at.replace(tzinfo=timezone.utc)
        return self._clock() - checked_at > self.ttl

    def get(self, key: str) -> Optional[CacheEntry]:
        """Returns the live entry for a key, or None when absent or expired."""
        with self._lock:
            try:
                row = self.connection.execute(
                    "SELECT key, ok, status, message, checked_at FROM external_cache WHERE key = ?",
                    (key,)
                ).fetchone()
            except sqlite3.Error as e:
                logger.error(f"Cache lookup failed for {key}: {e}")
                return None

        if row is None:
            return None

        entry = CacheEntry(
            key=row[0],
            ok=bool(row[1]),
            status=row[2],
            message=row[3] or "",
            checked_at=datetime.fromisoformat(row[4]),
        )
        if self.is_expired(entry):
            logger.debug("Cache entry expired: %s", key)
            return None
        return entry

    def upsert(self, entry: CacheEntry) -> None:
        with self._lock:
            try:
                with self.connection as conn:
                    conn.execute(
                        """
                        INSERT INTO external_cache (key, ok, status, message, checked_at)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            ok = excluded.ok,
                            status = excluded.status,
                            message = excluded.message,
                            checked_at = excluded.checked_at
                        """,
                        (entry.key, int(entry.ok), entry.status, entry.message, entry.checked_at.isoformat())
                    )
            except sqlite3.Error as e:
                logger.error(f"Cache upsert failed for {entry.key}: {e}")
                raise FatalIOError(f"Cannot write cache store {self.db_path}: {e}") from e

    def count(self) -> int:
        with self._lock:
            return self.connection.execute("SELECT COUNT(*) FROM external_cache").fetchone()[0]

    def clear(self) -> None:
        with self._lock:
            with self.connection as conn:
                conn.execute("DELETE FROM external_cache")
        logger.info("Cache store cleared: %s", self.db_path)
