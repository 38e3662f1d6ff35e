from __future__ import annotations

import pytest

from erp_sync.infrastructure.external.legacy_sync.cursor_puller import SqlCursorPuller
from erp_sync.infrastructure.external.legacy_sync.full_resync import FullResyncOrchestrator
from erp_sync.infrastructure.external.legacy_sync.table_mappings import FULL_RESYNC_TABLES


def test_full_resync_map_is_fixed() -> None:
    pairs = [(s.source_table, s.target_collection) for s in FULL_RESYNC_TABLES]
    assert pairs == [
        ("enterprises", "enterprises"),
        ("users", "users"),
        ("vehicles", "vehicles"),
        ("telemetry_data", "telemetry"),
        ("assets", "assets"),
        ("analytics", "analytics"),
    ]
    assert all(not s.uses_cursor for s in FULL_RESYNC_TABLES)


@pytest.mark.asyncio
async def test_missing_tables_are_skipped(source_engine, seed_table, store) -> None:
    await seed_table("users", "user_id TEXT, name TEXT", [{"user_id": "u1", "name": "Ana"}])
    await seed_table(
        "telemetry_data",
        "telemetry_id INTEGER, speed REAL",
        [{"telemetry_id": 1, "speed": 10.5}, {"telemetry_id": 2, "speed": 0.0}],
    )

    report = await FullResyncOrchestrator(puller=SqlCursorPuller(source_engine), store=store).run()

    assert set(report.tables) == {"users", "telemetry_data"}
    assert report.skipped == ["enterprises", "vehicles", "assets", "analytics"]
    assert report.total_written == 3
    assert store.collections["users"]["u1"]["name"] == "Ana"
    assert "syncedAt" in store.collections["users"]["u1"]
    assert set(store.collections["telemetry"]) == {"1", "2"}


@pytest.mark.asyncio
async def test_row_failure_does_not_stop_table(source_engine, seed_table, store) -> None:
    await seed_table(
        "vehicles",
        "vehicle_id TEXT, plate TEXT",
        [{"vehicle_id": f"v{i}", "plate": f"P{i}"} for i in range(4)],
    )
    store.reject_ids.add("v2")

    report = await FullResyncOrchestrator(puller=SqlCursorPuller(source_engine), store=store).run()

    stats = report.tables["vehicles"]
    assert stats.rows == 4
    assert stats.written == 3
    assert stats.failed == 1
    assert set(store.collections["vehicles"]) == {"v0", "v1", "v3"}
    assert report.to_dict()["tables"]["vehicles"]["failed"] == 1


@pytest.mark.asyncio
async def test_rows_without_id_get_random_ids(source_engine, seed_table, store) -> None:
    await seed_table("assets", "asset_id TEXT, name TEXT", [{"asset_id": None, "name": "x"}])

    report = await FullResyncOrchestrator(puller=SqlCursorPuller(source_engine), store=store).run()

    assert report.tables["assets"].identity_fallbacks == 1
    assert len(store.collections["assets"]) == 1
