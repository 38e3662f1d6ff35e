"""
Excepciones del pipeline de sincronización ERP -> Firestore.

Los errores por tabla se capturan en el caso de uso y se reportan en el
resumen agregado; solo los errores de configuración llegan al cliente HTTP
como 4xx.
"""
from typing import Any, Optional, Sequence

from erp_sync.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepción base para errores del sincronizador."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "SYNC_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class SourceUnavailableException(SyncException):
    """
    La base legacy no respondió (conexión o query).

    Es fatal para la pasada de la tabla actual; el checkpoint queda intacto,
    por lo que reintentar la invocación completa más tarde es seguro.
    """

    def __init__(self, table: str, reason: str):
        super().__init__(
            message=f"Origen no disponible para la tabla '{table}': {reason}",
            status_code=503,
            error_code="SOURCE_UNAVAILABLE",
            details={"table": table, "reason": reason}
        )
        self.table = table


class MalformedMappingException(SyncException):
    """El mapeo de campos entregado por el caller no es válido."""

    def __init__(self, reason: str, collection: Optional[str] = None):
        details = {"reason": reason}
        if collection:
            details["collection"] = collection
        super().__init__(
            message=f"Mapeo de campos inválido: {reason}",
            status_code=400,
            error_code="MALFORMED_MAPPING",
            details=details
        )


class WriteFailureException(SyncException):
    """
    Un sub-batch fue rechazado por el store destino.

    Ningún documento del sub-batch quedó aplicado; los sub-batches
    anteriores del mismo chunk sí quedaron persistidos.
    """

    def __init__(self, collection: str, document_ids: Sequence[str], reason: str):
        super().__init__(
            message=(
                f"Falló el commit de {len(document_ids)} documento(s) "
                f"en '{collection}': {reason}"
            ),
            status_code=500,
            error_code="WRITE_FAILURE",
            details={"collection": collection, "document_ids": list(document_ids)}
        )
        self.collection = collection
        self.document_ids = list(document_ids)
