"""
Registro de auditoría de corridas (colección "etlJobs").
"""

from __future__ import annotations

from typing import Any

from .firestore_store import FirestoreDocumentStore
from .types import utc_now

DEFAULT_JOBS_COLLECTION = "etlJobs"


class FirestoreJobLog:
    def __init__(self, store: FirestoreDocumentStore, *, collection: str = DEFAULT_JOBS_COLLECTION) -> None:
        self._store = store
        self._collection = collection

    async def append(self, summary: dict[str, Any], *, kind: str = "incremental") -> str:
        """Agrega un registro {createdAt, kind, summary} y retorna su id."""
        return await self._store.add(
            self._collection,
            {"createdAt": utc_now(), "kind": kind, "summary": summary},
        )
