"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Request

from erp_sync.application.use_cases.sync_use_cases import ErpSyncUseCases
from erp_sync.core.config import settings
from erp_sync.infrastructure.external.legacy_sync.firestore_store import FirestoreDocumentStore


def get_sync_use_cases(request: Request) -> ErpSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.

    El engine del ERP y el cliente Firestore se crean en el startup y viven
    en app.state; aqui solo se envuelven para la peticion.

    Returns:
        ErpSyncUseCases: Instancia de casos de uso de sincronizacion
    """
    return ErpSyncUseCases(
        engine=request.app.state.source_engine,
        store=FirestoreDocumentStore(request.app.state.firestore_client),
        settings=settings,
    )
