"""
Scan engine: turns a scan event into at most one score increment per origin.
"""

from .entries import EntryStore
from .errors import DuplicateOrigin, EntryNotFound
from .ledger import ScanLedger
from .models import Entry


class ScanEngine:
    """Credits scans to entries, optionally deduplicating by origin."""

    def __init__(
        self,
        entries: EntryStore,
        ledger: ScanLedger,
        dedup_by_origin: bool = True,
    ) -> None:
        self.entries = entries
        self.ledger = ledger
        self.dedup_by_origin = dedup_by_origin

    async def scan(
        self,
        entry_id: int,
        origin: str,
    ) -> Entry:
        """
        Register a scan of an entry by an origin.

        With deduplication on, only the first scan from an origin raises the
        score; later scans return the current entry unchanged. The ledger
        row and the increment are committed together or not at all, and the
        UNIQUE (entry_id, origin) constraint decides between concurrent
        first-time scans.

        @param entry_id: Entry id encoded in the scanned URL
        @param origin: Opaque scanner identifier (e.g. peer address)
        @return: The entry after the scan
        """
        entry = await self.entries.get_by_id(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)

        if self.dedup_by_origin and await self.ledger.has_scanned(entry_id, origin):
            print(f"Repeat scan of entry {entry_id} from {origin} ignored")
            return entry

        try:
            async with self.entries.database.transaction() as db:
                # Re-read under the write lock, the entry may have been deleted
                if await self.entries.get_by_id(entry_id, db=db) is None:
                    raise EntryNotFound(entry_id)

                if self.dedup_by_origin:
                    await self.ledger.record_scan(entry_id, origin, db=db)

                updated = await self.entries.increment_unconditional(entry_id, db=db)
        except DuplicateOrigin:
            print(f"Concurrent repeat scan of entry {entry_id} from {origin} ignored")
            current = await self.entries.get_by_id(entry_id)
            if current is None:
                raise EntryNotFound(entry_id)
            return current

        print(f"Scan of entry {entry_id} from {origin}: score now {updated.score}")
        return updated
