"""
Endpoints para sincronizacion ERP legacy -> Firestore.

La respuesta del sync incremental siempre es 200 con el detalle por tabla;
solo los errores de configuracion de la peticion (4xx) o fallos internos
inesperados (5xx) cortan la corrida completa.
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from loguru import logger

from erp_sync.api.v1.dependencies.use_case_deps import get_sync_use_cases
from erp_sync.application.dto.sync_dto import (
    CheckpointDTO,
    CheckpointResetResponseDTO,
    FullResyncResponseDTO,
    IncrementalSyncRequestDTO,
    IncrementalSyncResponseDTO,
)
from erp_sync.application.use_cases.sync_use_cases import ErpSyncUseCases
from erp_sync.shared.exceptions.base import AppException


router = APIRouter(tags=["Sync"])


@router.post(
    "/erp/sync-incremental",
    response_model=IncrementalSyncResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar incrementalmente el ERP con Firestore"
)
async def sync_incremental(
    dto: Optional[IncrementalSyncRequestDTO] = Body(default=None),
    use_cases: ErpSyncUseCases = Depends(get_sync_use_cases),
) -> IncrementalSyncResponseDTO:
    """
    Ejecuta el sync incremental de las tablas configuradas.

    - Retoma cada tabla desde su checkpoint (reset=True para empezar de cero)
    - 'enterprise' o 'enterprise_id' estampa enterpriseId en cada documento
    - 'tables' limita la corrida a un subconjunto de tablas

    Returns:
        IncrementalSyncResponseDTO con {inserted, lastPk} o {error} por coleccion
    """
    try:
        logger.info("Iniciando sincronizacion incremental ERP -> Firestore desde API")
        response = await use_cases.run_incremental(dto)
        failed = [c for c, r in response.results.items() if "error" in r]
        if failed:
            logger.warning(f"Sync incremental con errores en: {', '.join(failed)}")
        return response
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Error en sincronizacion incremental: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error al sincronizar: {str(e)}"
        )


@router.post(
    "/sync/full-resync",
    response_model=FullResyncResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Resincronizar completamente las tablas del ERP"
)
async def full_resync(
    use_cases: ErpSyncUseCases = Depends(get_sync_use_cases),
) -> FullResyncResponseDTO:
    """
    Lee cada tabla mapeada completa y la escribe en su coleccion.
    Pensado para bootstrap o recuperacion: no usa checkpoints.
    """
    try:
        logger.info("Iniciando resync completo ERP -> Firestore desde API")
        return await use_cases.run_full_resync()
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Error en resync completo: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error al resincronizar: {str(e)}"
        )


@router.get(
    "/erp/checkpoints",
    response_model=List[CheckpointDTO],
    summary="Listar checkpoints de sincronizacion"
)
async def list_checkpoints(
    use_cases: ErpSyncUseCases = Depends(get_sync_use_cases),
) -> List[CheckpointDTO]:
    return await use_cases.list_checkpoints()


@router.delete(
    "/erp/checkpoints/{table}",
    response_model=CheckpointResetResponseDTO,
    summary="Resetear el checkpoint de una tabla"
)
async def reset_checkpoint(
    table: str,
    use_cases: ErpSyncUseCases = Depends(get_sync_use_cases),
) -> CheckpointResetResponseDTO:
    """
    Borra el checkpoint: la proxima corrida relee la tabla desde el inicio.
    """
    await use_cases.reset_checkpoint(table)
    return CheckpointResetResponseDTO(table=table, reset=True)
