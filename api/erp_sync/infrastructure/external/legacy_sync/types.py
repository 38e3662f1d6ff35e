"""
Tipos y utilidades puras para el pipeline ERP legacy -> Firestore.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

# Fila del ERP tal como la devuelve el driver: columna -> valor, en el orden
# en que el SELECT la entrega. No se asume esquema fijo.
SourceRow = dict[str, Any]

# Valor de cursor persistido: PK (número, string, fecha) u offset numérico.
Position = Union[str, int, float, datetime, None]


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Los drivers MySQL/SQL Server suelen devolver datetimes naive; se asumen UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_document_id() -> str:
    """Id aleatorio de 20 caracteres, mismo largo que los auto-ids de Firestore."""
    return uuid.uuid4().hex[:20]


class SyncState(str, Enum):
    """Estados de una pasada incremental sobre una tabla."""

    INIT = "init"
    LOADING_CHECKPOINT = "loading_checkpoint"
    PULLING = "pulling"
    TRANSFORMING = "transforming"
    WRITING = "writing"
    SAVING_CHECKPOINT = "saving_checkpoint"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncState.DONE, SyncState.FAILED, SyncState.CANCELLED)


@dataclass(frozen=True)
class SyncCheckpoint:
    """
    Progreso persistido por tabla origen.

    last_position:
        en modo PK es el máximo valor de PK ya escrito en destino;
        en modo offset es la cantidad de filas ya leídas.
    """

    table: str
    last_position: Position
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class TargetDocument:
    """Documento listo para merge-upsert en una colección destino."""

    id: str
    data: dict[str, Any]


@dataclass
class SyncResult:
    """Resumen de una pasada incremental. No se persiste aquí."""

    table: str
    collection: str
    records_processed: int = 0
    final_position: Position = None
    errors: list[str] = field(default_factory=list)
    state: SyncState = SyncState.INIT
    chunks: int = 0
    identity_fallbacks: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == SyncState.DONE

    def to_summary(self) -> dict[str, Any]:
        """Forma de respuesta por colección: {inserted, lastPk} o {error}."""
        if self.state == SyncState.FAILED:
            return {"error": "; ".join(self.errors) or "sync fallido"}
        summary: dict[str, Any] = {
            "inserted": self.records_processed,
            "lastPk": self.final_position,
            "identityFallbacks": self.identity_fallbacks,
        }
        if self.state == SyncState.CANCELLED:
            summary["cancelled"] = True
        return summary
