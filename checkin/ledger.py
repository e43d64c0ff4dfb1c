"""
Scan ledger: which origins have already been credited for which entries.
"""

from typing import List, Optional

import aiosqlite

from .database import DatabaseManager, is_storable_id
from .errors import DuplicateOrigin
from .models import ScanRecord


class ScanLedger:
    """Durable (entry_id, origin) records backed by a UNIQUE constraint."""

    def __init__(
        self,
        database: DatabaseManager,
    ) -> None:
        self.database = database

    async def has_scanned(
        self,
        entry_id: int,
        origin: str,
    ) -> bool:
        """
        Check whether an origin has already been credited for an entry.

        @param entry_id: Entry id
        @param origin: Scanner origin string
        @return: True if a ledger row exists
        """
        if not is_storable_id(entry_id):
            return False

        async with self.database.connect() as db:
            cursor = await db.execute(
                "SELECT 1 FROM scans WHERE entry_id = ? AND origin = ?",
                (entry_id, origin),
            )
            return await cursor.fetchone() is not None

    async def record_scan(
        self,
        entry_id: int,
        origin: str,
        db: Optional[aiosqlite.Connection] = None,
    ) -> None:
        """
        Insert a ledger row.

        @param entry_id: Entry id
        @param origin: Scanner origin string
        @param db: Open connection to write through; a new transaction is used if None
        """
        if db is None:
            async with self.database.transaction() as conn:
                await self.record_scan(entry_id, origin, db=conn)
            return

        try:
            await db.execute(
                "INSERT INTO scans (entry_id, origin) VALUES (?, ?)",
                (entry_id, origin),
            )
        except aiosqlite.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateOrigin(entry_id, origin) from e
            raise

    async def list_scans(
        self,
        entry_id: int,
    ) -> List[ScanRecord]:
        """
        Get the ledger rows of one entry.

        @param entry_id: Entry id
        @return: Scan records ordered by scan time
        """
        if not is_storable_id(entry_id):
            return []

        async with self.database.connect() as db:
            cursor = await db.execute(
                """
                SELECT entry_id, origin, scanned_at
                FROM scans
                WHERE entry_id = ?
                ORDER BY scanned_at ASC, id ASC
            """,
                (entry_id,),
            )
            rows = await cursor.fetchall()

        return [ScanRecord.from_row(row) for row in rows]

    async def count_scans(
        self,
        entry_id: Optional[int] = None,
    ) -> int:
        """
        Count ledger rows, for one entry or overall.

        @param entry_id: Entry id, or None to count every row
        @return: Number of scan records
        """
        if entry_id is not None and not is_storable_id(entry_id):
            return 0

        async with self.database.connect() as db:
            if entry_id is None:
                cursor = await db.execute("SELECT COUNT(*) FROM scans")
            else:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM scans WHERE entry_id = ?", (entry_id,)
                )
            row = await cursor.fetchone()

        return row[0]
