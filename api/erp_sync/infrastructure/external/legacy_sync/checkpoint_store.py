"""
Checkpoint por tabla origen, persistido en Firestore.

Un documento por tabla en la colección de checkpoints (por defecto
"etlCheckpoints"), con la forma {lastPk, updatedAt}. Herramientas de
monitoreo pueden leer esa colección directamente.

El checkpoint es el estado de reanudación: nunca se borra automáticamente.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from .firestore_store import FirestoreDocumentStore
from .row_transformer import normalize_value
from .types import Position, SyncCheckpoint, utc_now

DEFAULT_CHECKPOINT_COLLECTION = "etlCheckpoints"


class FirestoreCheckpointStore:
    def __init__(
        self,
        store: FirestoreDocumentStore,
        *,
        collection: str = DEFAULT_CHECKPOINT_COLLECTION,
    ) -> None:
        self._store = store
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    async def load(self, table: str) -> Optional[SyncCheckpoint]:
        data = await self._store.get(self._collection, table)
        if data is None:
            return None
        return SyncCheckpoint(
            table=table,
            last_position=data.get("lastPk"),
            updated_at=data.get("updatedAt"),
        )

    async def save(self, table: str, position: Position) -> SyncCheckpoint:
        checkpoint = SyncCheckpoint(table=table, last_position=normalize_value(position), updated_at=utc_now())
        await self._store.set_merge(
            self._collection,
            table,
            {"lastPk": checkpoint.last_position, "updatedAt": checkpoint.updated_at},
        )
        return checkpoint

    async def reset(self, table: str) -> bool:
        """
        Borra el checkpoint (la próxima pasada arranca desde el inicio).

        Returns:
            True si existía, False si no había checkpoint.
        """
        if await self._store.get(self._collection, table) is None:
            return False
        await self._store.delete(self._collection, table)
        logger.info(f"Checkpoint reseteado para '{table}'")
        return True

    async def list_all(self) -> list[SyncCheckpoint]:
        return [
            SyncCheckpoint(
                table=doc_id,
                last_position=data.get("lastPk"),
                updated_at=data.get("updatedAt"),
            )
            for doc_id, data in await self._store.list_documents(self._collection)
        ]
