"""
Excepciones relacionadas con la validación de peticiones y entidades.
"""
from typing import Any

from erp_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Error atribuible a la petición (4xx)."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Recurso inexistente (p.ej. checkpoint de una tabla nunca sincronizada)."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} '{entity_id}' no existe",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class UnknownTablesException(DomainException):
    """Excepción cuando la petición nombra tablas que no están configuradas."""

    def __init__(self, unknown: list[str], known: list[str]):
        super().__init__(
            message=f"Tablas no configuradas para sync: {', '.join(unknown)}",
            error_code="UNKNOWN_TABLES",
            details={
                "unknown_tables": unknown,
                "configured_tables": known,
            }
        )
