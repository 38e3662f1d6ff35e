"""
Escritura por sub-batches en Firestore.

Cada sub-batch se confirma de forma atómica, así que su tamaño es también
el radio de impacto de un documento inválido: si uno falla, falla el grupo
completo y los sub-batches previos quedan confirmados.
"""

from __future__ import annotations

from typing import Sequence

from google.api_core.exceptions import GoogleAPICallError
from loguru import logger

from erp_sync.shared.exceptions.sync import WriteFailureException

from .firestore_store import FIRESTORE_MAX_BATCH_WRITES, FirestoreDocumentStore
from .types import TargetDocument


def split_batches(documents: Sequence[TargetDocument], size: int) -> list[Sequence[TargetDocument]]:
    return [documents[i:i + size] for i in range(0, len(documents), size)]


class BatchWriter:
    """
    Merge-upsert idempotente por id de documento: los campos presentes se
    reemplazan y los ausentes quedan intactos.
    """

    def __init__(
        self,
        store: FirestoreDocumentStore,
        *,
        max_batch_size: int = FIRESTORE_MAX_BATCH_WRITES,
    ) -> None:
        if not 0 < max_batch_size <= FIRESTORE_MAX_BATCH_WRITES:
            raise ValueError(
                f"max_batch_size debe estar entre 1 y {FIRESTORE_MAX_BATCH_WRITES}"
            )
        self._store = store
        self._max_batch_size = max_batch_size

    async def write_batch(self, collection: str, documents: Sequence[TargetDocument]) -> int:
        """
        Escribe `documents` en sub-batches. Retorna la cantidad escrita.

        Raises:
            WriteFailureException: con los ids del sub-batch rechazado.
        """
        written = 0
        for sub_batch in split_batches(list(documents), self._max_batch_size):
            try:
                await self._store.commit_batch(collection, sub_batch)
            except (GoogleAPICallError, ValueError, TypeError) as e:
                ids = [doc.id for doc in sub_batch]
                logger.error(
                    f"Sub-batch rechazado en '{collection}' ({len(ids)} docs, "
                    f"{written} ya confirmados en esta llamada): {e}"
                )
                raise WriteFailureException(collection, ids, str(e)) from e
            written += len(sub_batch)
        return written
