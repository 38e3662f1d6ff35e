"""
DTOs de los endpoints de sincronizacion ERP -> Firestore.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class IncrementalSyncRequestDTO(BaseModel):
    """Cuerpo (opcional) de POST /erp/sync-incremental."""

    enterprise: Optional[Dict[str, Any]] = Field(
        None,
        description="Empresa a crear/actualizar antes del sync; su id se estampa como enterpriseId"
    )
    enterprise_id: Optional[str] = Field(
        None,
        min_length=1,
        description="enterpriseId a estampar (ignorado si se envia 'enterprise')"
    )
    tables: Optional[List[str]] = Field(
        None,
        description="Subconjunto de tablas a sincronizar (nombre de coleccion o de tabla origen)"
    )
    field_mapping: Optional[Dict[str, Any]] = Field(
        None,
        description="Override de ERP_FIELD_MAPPING: {coleccion: {columna_legacy: campo_destino}}"
    )
    reset: bool = Field(
        False,
        description="Si True, borra los checkpoints de las tablas elegidas antes de sincronizar"
    )


class IncrementalSyncResponseDTO(BaseModel):
    """Resumen por coleccion: {inserted, lastPk, identityFallbacks} o {error}."""

    ok: bool = True
    results: Dict[str, Dict[str, Any]]
    enterprise_id: Optional[str] = None
    job_id: Optional[str] = None


class FullResyncResponseDTO(BaseModel):
    """Resultado de la resincronizacion completa."""

    tables: Dict[str, Dict[str, Any]]
    skipped: List[str]
    total_written: int


class CheckpointDTO(BaseModel):
    """Checkpoint persistido de una tabla."""

    table: str
    last_position: Any = None
    updated_at: Optional[datetime] = None


class CheckpointResetResponseDTO(BaseModel):
    table: str
    reset: bool
