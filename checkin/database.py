"""
Database connection management for the check-in leaderboard.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import aiosqlite

from .errors import StorageUnavailable

# SQLite INTEGER is a signed 64-bit value
SQLITE_MAX_INT = 2**63 - 1
SQLITE_MIN_INT = -(2**63)


def is_storable_id(entry_id: int) -> bool:
    """
    Check whether an id fits in an SQLite INTEGER column.

    @param entry_id: Candidate row id
    @return: False for ids no row can have
    """
    return SQLITE_MIN_INT <= entry_id <= SQLITE_MAX_INT


class DatabaseManager:
    """Owns the SQLite file, its schema, and a small TTL cache for reads."""

    def __init__(
        self,
        db_path: str,
        config: Any,
    ) -> None:
        self.db_path = db_path
        self.config = config
        self.busy_timeout = float(config.get("database", "busy_timeout") or 5.0)
        self._closed = False
        # Simple in-memory cache with TTL
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._cache_ttl = config.get("cache", "leaderboard_ttl") or 0

    def _get_cache_key(self, *args: Any) -> str:
        """
        Generate a cache key from arguments.

        @param args: Variable arguments to create cache key from
        @return: String cache key generated from arguments
        """
        return ":".join(str(arg) for arg in args)

    def get_from_cache(
        self,
        *key_parts: Any,
    ) -> Optional[Any]:
        """
        Get value from cache if valid.

        @param key_parts: Parts making up the cache key
        @return: Cached data if valid, None if expired or not found
        """
        cache_key = self._get_cache_key(*key_parts)

        if cache_key in self._cache:
            data, timestamp = self._cache[cache_key]

            if time.time() - timestamp < self._cache_ttl:
                return data
            else:
                # Expired, remove from cache
                del self._cache[cache_key]
        return None

    def set_cache(
        self,
        data: Any,
        *key_parts: Any,
    ) -> None:
        """
        Set value in cache with current timestamp.

        @param data: Data to cache
        @param key_parts: Parts making up the cache key
        """
        if self._cache_ttl <= 0:
            return
        self._cache[self._get_cache_key(*key_parts)] = (data, time.time())

    def invalidate_cache(
        self,
        pattern: Optional[str] = None,
    ) -> None:
        """
        Invalidate cache entries matching pattern or all if None.

        @param pattern: Optional string pattern to match cache keys against
        """
        if pattern is None:
            self._cache.clear()
        else:
            keys_to_remove = [k for k in self._cache if pattern in k]
            for key in keys_to_remove:
                del self._cache[key]

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Open a connection in autocommit mode with foreign keys enforced.

        Operational failures (missing directory, locked or corrupt file)
        surface as StorageUnavailable. Integrity errors pass through so
        callers can interpret constraint violations.
        """
        if self._closed:
            raise StorageUnavailable("Database manager is closed")

        try:
            db = await aiosqlite.connect(
                self.db_path,
                timeout=self.busy_timeout,
                isolation_level=None,
            )
        except aiosqlite.Error as e:
            raise StorageUnavailable(f"Cannot open database {self.db_path}: {e}") from e

        try:
            db.row_factory = aiosqlite.Row
            # Foreign keys are off by default and are per connection
            await db.execute("PRAGMA foreign_keys=ON")
            yield db
        except aiosqlite.OperationalError as e:
            raise StorageUnavailable(f"Database error: {e}") from e
        finally:
            await db.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run a block as one all-or-nothing write transaction.

        BEGIN IMMEDIATE takes the write lock up front, so concurrent
        transactions queue on it instead of interleaving. Any exception
        rolls everything back.
        """
        async with self.connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            else:
                await db.commit()
            finally:
                self.invalidate_cache()

    async def init_db(self) -> None:
        """
        Initialize the SQLite database schema.

        Creates the entries and scans tables and their indexes if absent.
        """
        self._closed = False

        async with self.connect() as db:
            # Enable WAL mode for better concurrent access
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")

            await db.execute("""
                CREATE TABLE IF NOT EXISTS entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    score INTEGER NOT NULL DEFAULT 0 CHECK (score >= 0),
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.execute("""
                CREATE TABLE IF NOT EXISTS scans (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    entry_id INTEGER NOT NULL,
                    origin TEXT NOT NULL,
                    scanned_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (entry_id) REFERENCES entries(id) ON DELETE CASCADE,
                    UNIQUE (entry_id, origin)
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_entries_score_name
                ON entries(score DESC, name ASC)
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_entries_name
                ON entries(name ASC)
            """)

        print(f"Database ready: {self.db_path}")

    async def close(self) -> None:
        """
        Shut the manager down.

        Every operation holds its own connection, so closing only drops
        the cache and refuses further work.
        """
        self._closed = True
        self.invalidate_cache()
