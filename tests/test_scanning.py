"""
Tests for the scan ledger and scan engine.
"""

import asyncio

import pytest

from checkin import (
    DatabaseManager,
    DuplicateOrigin,
    EntryNotFound,
    EntryStore,
    ScanEngine,
    ScanLedger,
    StorageUnavailable,
)


@pytest.fixture
async def alice(entries):
    return await entries.create("Alice", privileged=True)


async def test_first_scan_increments_and_records(engine, ledger, alice):
    updated = await engine.scan(alice.id, "1.2.3.4")

    assert updated.score == 1
    assert await ledger.has_scanned(alice.id, "1.2.3.4")
    assert [s.origin for s in await ledger.list_scans(alice.id)] == ["1.2.3.4"]


async def test_repeat_scans_from_same_origin_are_idempotent(engine, ledger, entries, alice):
    results = [await engine.scan(alice.id, "1.2.3.4") for _ in range(5)]

    assert [r.score for r in results] == [1, 1, 1, 1, 1]
    assert (await entries.get_by_id(alice.id)).score == 1
    assert await ledger.count_scans(alice.id) == 1


async def test_concurrent_scans_from_same_origin_count_once(engine, ledger, entries, alice):
    results = await asyncio.gather(*(engine.scan(alice.id, "1.2.3.4") for _ in range(10)))

    assert all(r.id == alice.id for r in results)
    assert (await entries.get_by_id(alice.id)).score == 1
    assert await ledger.count_scans(alice.id) == 1


async def test_distinct_origins_add_up(engine, ledger, entries, alice):
    origins = [f"192.168.0.{i}" for i in range(1, 8)]
    await asyncio.gather(*(engine.scan(alice.id, origin) for origin in origins))

    assert (await entries.get_by_id(alice.id)).score == len(origins)
    assert await ledger.count_scans(alice.id) == len(origins)


async def test_same_origin_may_scan_different_entries(engine, entries, alice):
    bob = await entries.create("Bob", privileged=True)

    assert (await engine.scan(alice.id, "1.2.3.4")).score == 1
    assert (await engine.scan(bob.id, "1.2.3.4")).score == 1


async def test_scan_missing_entry_leaves_store_unchanged(engine, entries, ledger):
    with pytest.raises(EntryNotFound) as excinfo:
        await engine.scan(9999, "1.2.3.4")

    assert excinfo.value.entry_id == 9999
    assert await entries.list_by_score_desc() == []
    assert await ledger.count_scans() == 0


async def test_scan_id_beyond_sqlite_range_is_not_found(engine, entries, ledger, alice):
    with pytest.raises(EntryNotFound):
        await engine.scan(2**64, "1.2.3.4")

    assert (await entries.get_by_id(alice.id)).score == 0
    assert await ledger.count_scans() == 0


async def test_ledger_lookups_on_out_of_range_ids(ledger):
    assert await ledger.has_scanned(2**63, "1.2.3.4") is False
    assert await ledger.list_scans(2**63) == []
    assert await ledger.count_scans(-(2**63) - 1) == 0


async def test_admin_increment_bypasses_ledger(engine, entries, ledger, alice):
    await entries.increment_unconditional(alice.id)
    await engine.scan(alice.id, "1.2.3.4")

    assert (await entries.get_by_id(alice.id)).score == 2
    assert await ledger.count_scans(alice.id) == 1


async def test_without_dedup_every_scan_counts(entries, ledger, alice):
    engine = ScanEngine(entries, ledger, dedup_by_origin=False)

    for _ in range(3):
        await engine.scan(alice.id, "1.2.3.4")

    assert (await entries.get_by_id(alice.id)).score == 3
    assert await ledger.count_scans() == 0


async def test_ledger_rejects_duplicate_rows(ledger, alice):
    await ledger.record_scan(alice.id, "1.2.3.4")

    with pytest.raises(DuplicateOrigin):
        await ledger.record_scan(alice.id, "1.2.3.4")

    assert await ledger.count_scans(alice.id) == 1


async def test_stale_precheck_is_resolved_by_unique_constraint(engine, entries, ledger, alice):
    # A row written behind the engine's back, as by a concurrent scan
    await ledger.record_scan(alice.id, "1.2.3.4")

    async def never_scanned(entry_id, origin):
        return False

    ledger.has_scanned = never_scanned
    result = await engine.scan(alice.id, "1.2.3.4")

    assert result.score == 0
    assert (await entries.get_by_id(alice.id)).score == 0
    assert await ledger.count_scans(alice.id) == 1


async def test_failed_increment_rolls_back_ledger_row(engine, entries, ledger, alice):
    async def broken_increment(entry_id, db=None):
        raise RuntimeError("boom")

    entries.increment_unconditional = broken_increment

    with pytest.raises(RuntimeError):
        await engine.scan(alice.id, "1.2.3.4")

    assert await ledger.count_scans() == 0
    assert (await entries.get_by_id(alice.id)).score == 0


async def test_unreachable_database_raises_storage_unavailable(tmp_path, config):
    database = DatabaseManager(str(tmp_path / "missing" / "data.db"), config)
    engine = ScanEngine(EntryStore(database), ScanLedger(database))

    with pytest.raises(StorageUnavailable):
        await engine.scan(1, "1.2.3.4")


async def test_closed_database_raises_storage_unavailable(database, entries):
    await database.close()

    with pytest.raises(StorageUnavailable):
        await entries.list_by_name_asc()
