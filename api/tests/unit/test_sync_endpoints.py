"""
Tests del contrato HTTP de los endpoints de sincronización.

La app se crea sin lifespan y el caso de uso se inyecta con
dependency_overrides, respaldado por SQLite y el store en memoria.
"""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from erp_sync.api.v1.dependencies.use_case_deps import get_sync_use_cases
from erp_sync.application.use_cases.sync_use_cases import ErpSyncUseCases
from erp_sync.core.config import Settings


@pytest.fixture
async def use_cases(source_engine, seed_table, store) -> ErpSyncUseCases:
    await seed_table(
        "employees",
        "id INTEGER PRIMARY KEY, full_name TEXT",
        [{"id": i, "full_name": f"Emp {i}"} for i in range(1, 4)],
    )
    await seed_table("users", "user_id TEXT, name TEXT", [{"user_id": "u1", "name": "Ana"}])
    settings = Settings(ERP_CHUNK_SIZE=2, ERP_THROTTLE_MS=0, ERP_FIELD_MAPPING="")
    return ErpSyncUseCases(engine=source_engine, store=store, settings=settings)


@pytest.fixture
def app_with_use_cases(use_cases):
    from main import create_application
    app = create_application(with_lifespan=False)
    app.dependency_overrides[get_sync_use_cases] = lambda: use_cases
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_with_use_cases):
    transport = ASGITransport(app=app_with_use_cases)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_sync_incremental_without_body(client) -> None:
    response = await client.post("/api/v1/erp/sync-incremental")

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["results"]["users"] == {"inserted": 3, "lastPk": 3, "identityFallbacks": 0}
    assert "error" in data["results"]["assets"]
    assert data["job_id"]


@pytest.mark.asyncio
async def test_sync_incremental_with_tenant_and_mapping(client, store) -> None:
    response = await client.post(
        "/api/v1/erp/sync-incremental",
        json={
            "enterprise_id": "ent-1",
            "tables": ["users"],
            "field_mapping": {"users": {"full_name": "name"}},
        },
    )

    assert response.status_code == 200
    assert response.json()["enterprise_id"] == "ent-1"
    doc = store.collections["users"]["2"]
    assert doc["name"] == "Emp 2"
    assert doc["enterpriseId"] == "ent-1"


@pytest.mark.asyncio
async def test_malformed_mapping_returns_400(client) -> None:
    response = await client.post(
        "/api/v1/erp/sync-incremental",
        json={"field_mapping": {"users": {"full_name": ""}}},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "MALFORMED_MAPPING"


@pytest.mark.asyncio
async def test_unknown_table_returns_400(client) -> None:
    response = await client.post("/api/v1/erp/sync-incremental", json={"tables": ["ghost"]})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "UNKNOWN_TABLES"
    assert body["details"]["unknown_tables"] == ["ghost"]


@pytest.mark.asyncio
async def test_invalid_body_returns_422(client) -> None:
    response = await client.post("/api/v1/erp/sync-incremental", json={"tables": 5})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_full_resync_endpoint(client, store) -> None:
    response = await client.post("/api/v1/sync/full-resync")

    assert response.status_code == 200
    data = response.json()
    assert data["total_written"] == 1
    assert "users" in data["tables"]
    assert "vehicles" in data["skipped"]
    assert store.collections["users"]["u1"]["name"] == "Ana"


@pytest.mark.asyncio
async def test_checkpoint_endpoints(client) -> None:
    await client.post("/api/v1/erp/sync-incremental", json={"tables": ["users"]})

    listed = await client.get("/api/v1/erp/checkpoints")
    assert listed.status_code == 200
    assert listed.json()[0]["table"] == "employees"
    assert listed.json()[0]["last_position"] == 3

    deleted = await client.delete("/api/v1/erp/checkpoints/employees")
    assert deleted.status_code == 200
    assert deleted.json() == {"table": "employees", "reset": True}

    missing = await client.delete("/api/v1/erp/checkpoints/employees")
    assert missing.status_code == 404
    assert missing.json()["error"] == "ENTITY_NOT_FOUND"


@pytest.mark.asyncio
async def test_unexpected_error_returns_500() -> None:
    from main import create_application

    failing = AsyncMock()
    failing.run_full_resync = AsyncMock(side_effect=RuntimeError("boom"))
    app = create_application(with_lifespan=False)
    app.dependency_overrides[get_sync_use_cases] = lambda: failing

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/v1/sync/full-resync")

    assert response.status_code == 500
    assert "boom" in response.json()["detail"]


@pytest.mark.asyncio
async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["tables"]["users"] == "employees"


@pytest.mark.asyncio
async def test_unmapped_error_is_handled_by_middleware() -> None:
    from main import create_application

    failing = AsyncMock()
    failing.list_checkpoints = AsyncMock(side_effect=RuntimeError("firestore caido"))
    app = create_application(with_lifespan=False)
    app.dependency_overrides[get_sync_use_cases] = lambda: failing

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/v1/erp/checkpoints")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "INTERNAL_SERVER_ERROR"
    assert body["details"]["path"] == "/api/v1/erp/checkpoints"
