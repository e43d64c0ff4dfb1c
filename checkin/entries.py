"""
Entry storage for the check-in leaderboard.
"""

from typing import List, Optional

import aiosqlite

from .database import DatabaseManager, is_storable_id
from .errors import InvalidInput, NotPrivileged
from .models import Entry


class EntryStore:
    """Creates, lists, deletes and increments leaderboard entries."""

    def __init__(
        self,
        database: DatabaseManager,
    ) -> None:
        self.database = database

    async def list_by_score_desc(self) -> List[Entry]:
        """
        Get the leaderboard.

        @return: Entries ordered by score descending, then name ascending
        """
        cached = self.database.get_from_cache("leaderboard")
        if cached is not None:
            return list(cached)

        async with self.database.connect() as db:
            cursor = await db.execute(
                "SELECT id, name, score FROM entries ORDER BY score DESC, name ASC"
            )
            rows = await cursor.fetchall()

        entries = [Entry.from_row(row) for row in rows]
        self.database.set_cache(entries, "leaderboard")
        return list(entries)

    async def list_by_name_asc(self) -> List[Entry]:
        """
        Get all entries for administrative listing.

        @return: Entries ordered by name ascending, including created_at
        """
        async with self.database.connect() as db:
            cursor = await db.execute(
                "SELECT id, name, score, created_at FROM entries ORDER BY name ASC"
            )
            rows = await cursor.fetchall()

        return [Entry.from_row(row) for row in rows]

    async def get_by_id(
        self,
        entry_id: int,
        db: Optional[aiosqlite.Connection] = None,
    ) -> Optional[Entry]:
        """
        Look up a single entry.

        @param entry_id: Entry id
        @param db: Open connection to read through (e.g. inside a transaction)
        @return: The entry, or None if it does not exist
        """
        if not is_storable_id(entry_id):
            return None

        query = "SELECT id, name, score, created_at FROM entries WHERE id = ?"

        if db is not None:
            cursor = await db.execute(query, (entry_id,))
            row = await cursor.fetchone()
        else:
            async with self.database.connect() as conn:
                cursor = await conn.execute(query, (entry_id,))
                row = await cursor.fetchone()

        return Entry.from_row(row) if row is not None else None

    async def create(
        self,
        name: str,
        *,
        privileged: bool,
    ) -> Entry:
        """
        Create a new entry with a score of zero.

        @param name: Display name, trimmed before storage
        @param privileged: Whether the caller passed the admin gate
        @return: The stored entry including its new id
        """
        if not privileged:
            raise NotPrivileged("Creating entries requires admin access")

        if not isinstance(name, str) or not name.strip():
            raise InvalidInput("Name is required")
        name = name.strip()

        async with self.database.transaction() as db:
            cursor = await db.execute("INSERT INTO entries (name) VALUES (?)", (name,))
            entry = await self.get_by_id(cursor.lastrowid, db=db)

        print(f"Added new entry: {entry.name} (id {entry.id})")
        return entry

    async def delete(
        self,
        entry_id: int,
        *,
        privileged: bool,
    ) -> bool:
        """
        Delete an entry together with its scan records.

        @param entry_id: Entry id
        @param privileged: Whether the caller passed the admin gate
        @return: True if an entry was removed, False if it did not exist
        """
        if not privileged:
            raise NotPrivileged("Deleting entries requires admin access")

        if not is_storable_id(entry_id):
            return False

        async with self.database.transaction() as db:
            cursor = await db.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            print(f"Deleted entry {entry_id}")
        return deleted

    async def increment_unconditional(
        self,
        entry_id: int,
        db: Optional[aiosqlite.Connection] = None,
    ) -> Optional[Entry]:
        """
        Add one to an entry's score without consulting the scan ledger.

        @param entry_id: Entry id
        @param db: Open connection to write through; a new transaction is used if None
        @return: The updated entry, or None if it does not exist
        """
        if not is_storable_id(entry_id):
            return None

        if db is None:
            async with self.database.transaction() as conn:
                return await self.increment_unconditional(entry_id, db=conn)

        await db.execute("UPDATE entries SET score = score + 1 WHERE id = ?", (entry_id,))
        return await self.get_by_id(entry_id, db=db)

    async def print_leaderboard(self) -> None:
        """
        Print the complete leaderboard to console.
        """
        print("\n" + "=" * 50)
        print("LEADERBOARD")
        print("=" * 50)

        entries = await self.list_by_score_desc()
        if not entries:
            print("Leaderboard is empty")
            return

        for position, entry in enumerate(entries, 1):
            print(f"{position:2d}. {entry.name:<25} Score: {entry.score:4d}")
