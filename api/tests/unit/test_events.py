from __future__ import annotations

import pytest
from fastapi import FastAPI

from erp_sync.core import events
from erp_sync.core.config import Settings, get_cors_origins


@pytest.mark.asyncio
async def test_lifespan_opens_and_releases_resources(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        events,
        "settings",
        Settings(
            ERP_DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'erp.db'}",
            LOG_FILE=str(tmp_path / "sync.log"),
        ),
    )
    fake_client = object()
    monkeypatch.setattr(events, "create_firestore_client", lambda **kwargs: fake_client)
    app = FastAPI()

    async with events.lifespan(app):
        assert app.state.firestore_client is fake_client
        assert app.state.source_engine.dialect.name == "sqlite"

    assert app.state.firestore_client is None


def test_sqlite_client_builds_aiosqlite_url() -> None:
    cfg = Settings(ERP_DATABASE_URL="", ERP_DB_CLIENT="sqlite", ERP_DB_NAME="legacy.db")
    assert cfg.effective_erp_database_url == "sqlite+aiosqlite:///legacy.db"


def test_cors_origins_parsing() -> None:
    assert get_cors_origins("*") == ["*"]
    assert get_cors_origins('["http://a", "http://b"]') == ["http://a", "http://b"]
    assert get_cors_origins("http://a, http://b") == ["http://a", "http://b"]
