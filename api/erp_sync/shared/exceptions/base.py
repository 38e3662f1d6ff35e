"""
Raiz de la jerarquia de errores del sincronizador.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Error con contrato HTTP propio.

    El handler global de main.py lo traduce a {error, message, details} con
    `status_code`; el caso de uso lo reporta por tabla en el resumen del sync.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            message: Texto legible para logs y para el cliente
            status_code: Status HTTP al llegar a la API
            error_code: Codigo estable (MALFORMED_MAPPING, WRITE_FAILURE, ...)
            details: Contexto estructurado (tabla, coleccion, ids)
        """
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }
