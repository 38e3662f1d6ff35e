"""
Configuración de fixtures para pytest.

- ERP legacy: SQLite (aiosqlite) en archivo temporal, un archivo por test.
- Firestore: InMemoryDocumentStore, con la misma interfaz que
  FirestoreDocumentStore y rechazo de batches configurable.
"""
from __future__ import annotations

import copy
from collections import defaultdict
from datetime import date, datetime
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, Sequence

import pytest
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine

from erp_sync.infrastructure.database.session import create_source_engine
from erp_sync.infrastructure.external.legacy_sync.firestore_store import FIRESTORE_MAX_BATCH_WRITES
from erp_sync.infrastructure.external.legacy_sync.types import TargetDocument, new_document_id

_FIRESTORE_SCALARS = (type(None), bool, int, float, str, bytes, datetime, date)


def _check_storable(value: Any, path: str) -> None:
    if isinstance(value, dict):
        for k, v in value.items():
            _check_storable(v, f"{path}.{k}")
    elif isinstance(value, list):
        for i, v in enumerate(value):
            _check_storable(v, f"{path}[{i}]")
    elif not isinstance(value, _FIRESTORE_SCALARS):
        raise TypeError(f"Cannot convert to a Firestore Value: {path}={value!r}")


class InMemoryDocumentStore:
    """Doble de Firestore para tests: colecciones como dicts en memoria."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.commits: list[tuple[str, int]] = []
        self.reject_ids: set[str] = set()
        self.fail_add = False

    async def get(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        data = self.collections[collection].get(document_id)
        return copy.deepcopy(data) if data is not None else None

    async def set_merge(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        if document_id in self.reject_ids:
            raise ValueError(f"documento rechazado: {document_id}")
        _check_storable(data, document_id)
        self.collections[collection].setdefault(document_id, {}).update(copy.deepcopy(data))

    async def delete(self, collection: str, document_id: str) -> None:
        self.collections[collection].pop(document_id, None)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        if self.fail_add:
            raise RuntimeError("Firestore no disponible")
        doc_id = new_document_id()
        self.collections[collection][doc_id] = copy.deepcopy(data)
        return doc_id

    async def commit_batch(self, collection: str, documents: Sequence[TargetDocument]) -> None:
        if len(documents) > FIRESTORE_MAX_BATCH_WRITES:
            raise ValueError("demasiadas escrituras en un batch")
        # Todo o nada: se valida el grupo completo antes de aplicar
        for doc in documents:
            if doc.id in self.reject_ids:
                raise ValueError(f"documento rechazado: {doc.id}")
            _check_storable(doc.data, doc.id)
        for doc in documents:
            self.collections[collection].setdefault(doc.id, {}).update(copy.deepcopy(doc.data))
        self.commits.append((collection, len(documents)))

    async def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        return [(doc_id, copy.deepcopy(data)) for doc_id, data in self.collections[collection].items()]


SeedTable = Callable[[str, str, Sequence[dict[str, Any]]], Awaitable[None]]


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
async def source_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Engine del ERP de prueba sobre un archivo SQLite temporal."""
    engine = create_source_engine(f"sqlite+aiosqlite:///{tmp_path / 'legacy.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
def seed_table(source_engine: AsyncEngine) -> SeedTable:
    """
    Crea una tabla en el ERP de prueba y la llena.

    Uso:
        await seed_table("vehicles", "id INTEGER PRIMARY KEY, vin TEXT", rows)
    """
    async def _seed(name: str, columns_ddl: str, rows: Sequence[dict[str, Any]]) -> None:
        async with source_engine.begin() as conn:
            await conn.exec_driver_sql(f"CREATE TABLE {name} ({columns_ddl})")
            if rows:
                table = sa.table(name, *[sa.column(c) for c in rows[0]])
                await conn.execute(table.insert(), list(rows))

    return _seed
