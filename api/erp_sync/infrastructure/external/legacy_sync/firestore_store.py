"""
Adaptador del store destino (Firestore, google-cloud-firestore async).

Expone solo lo que el sincronizador necesita:
- get / set con merge / delete por documento
- commit atómico de un grupo de documentos (WriteBatch)
- add con id autogenerado y listado de una colección

El AsyncClient lo construye y lo cierra el caller (ver core.events);
aquí no hay handles globales.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from google.cloud import firestore

from .types import TargetDocument

# Límite de escrituras por WriteBatch en Firestore
FIRESTORE_MAX_BATCH_WRITES = 500


def create_firestore_client(project: Optional[str] = None, database: Optional[str] = None) -> firestore.AsyncClient:
    """
    Crea el cliente async. Las credenciales salen de
    GOOGLE_APPLICATION_CREDENTIALS (o del entorno GCP).
    """
    kwargs: dict[str, Any] = {}
    if project:
        kwargs["project"] = project
    if database:
        kwargs["database"] = database
    return firestore.AsyncClient(**kwargs)


class FirestoreDocumentStore:
    def __init__(self, client: firestore.AsyncClient) -> None:
        self._client = client

    async def get(self, collection: str, document_id: str) -> Optional[dict[str, Any]]:
        snap = await self._client.collection(collection).document(document_id).get()
        if not snap.exists:
            return None
        return snap.to_dict()

    async def set_merge(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        await self._client.collection(collection).document(document_id).set(data, merge=True)

    async def delete(self, collection: str, document_id: str) -> None:
        await self._client.collection(collection).document(document_id).delete()

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        ref = self._client.collection(collection).document()
        await ref.set(data)
        return ref.id

    async def commit_batch(self, collection: str, documents: Sequence[TargetDocument]) -> None:
        """
        Merge-upsert atómico: o se aplican todos los documentos o ninguno.
        """
        if len(documents) > FIRESTORE_MAX_BATCH_WRITES:
            raise ValueError(
                f"Un WriteBatch admite hasta {FIRESTORE_MAX_BATCH_WRITES} escrituras "
                f"(se recibieron {len(documents)})"
            )
        batch = self._client.batch()
        col = self._client.collection(collection)
        for doc in documents:
            batch.set(col.document(doc.id), doc.data, merge=True)
        await batch.commit()

    async def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        docs = []
        async for snap in self._client.collection(collection).stream():
            docs.append((snap.id, snap.to_dict()))
        return docs
