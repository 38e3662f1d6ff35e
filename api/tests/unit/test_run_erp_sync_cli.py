from __future__ import annotations

import pytest

from erp_sync.core.config import Settings
from scripts import run_erp_sync


def test_parser_defaults_to_incremental() -> None:
    args = run_erp_sync.build_parser().parse_args([])
    assert not args.full_resync
    assert not args.list_checkpoints
    assert args.tables is None


def test_parser_modes_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        run_erp_sync.build_parser().parse_args(["--full-resync", "--list-checkpoints"])


@pytest.mark.asyncio
async def test_run_incremental_from_cli(tmp_path, monkeypatch, store, capsys) -> None:
    db_url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(
        run_erp_sync,
        "settings",
        Settings(ERP_DATABASE_URL=db_url, ERP_THROTTLE_MS=0, ERP_FIELD_MAPPING=""),
    )
    monkeypatch.setattr(run_erp_sync, "create_firestore_client", lambda **kwargs: None)
    monkeypatch.setattr(run_erp_sync, "FirestoreDocumentStore", lambda client: store)

    args = run_erp_sync.build_parser().parse_args(["--tables", "telemetry"])
    exit_code = await run_erp_sync.run(args)

    # telemetry_data no existe en la base vacía
    assert exit_code == 1
    assert '"error"' in capsys.readouterr().out
