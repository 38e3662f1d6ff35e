"""
Casos de uso de sincronizacion ERP -> Firestore.

Esta capa es la unica que traduce configuracion (Settings + peticion) a
objetos explicitos (TableSyncSpec) para el nucleo del sincronizador.
Las corridas multi-tabla son best-effort por tabla: el error de una tabla
queda en su entrada del resumen y el resto sigue.
"""
import asyncio
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from erp_sync.application.dto.sync_dto import (
    CheckpointDTO,
    FullResyncResponseDTO,
    IncrementalSyncRequestDTO,
    IncrementalSyncResponseDTO,
)
from erp_sync.core.config import Settings
from erp_sync.infrastructure.external.legacy_sync.batch_writer import BatchWriter
from erp_sync.infrastructure.external.legacy_sync.checkpoint_store import FirestoreCheckpointStore
from erp_sync.infrastructure.external.legacy_sync.cursor_puller import SqlCursorPuller
from erp_sync.infrastructure.external.legacy_sync.firestore_store import FirestoreDocumentStore
from erp_sync.infrastructure.external.legacy_sync.full_resync import FullResyncOrchestrator
from erp_sync.infrastructure.external.legacy_sync.job_log import FirestoreJobLog
from erp_sync.infrastructure.external.legacy_sync.row_transformer import normalize_value
from erp_sync.infrastructure.external.legacy_sync.sync_config import TableSyncSpec, parse_field_mappings
from erp_sync.infrastructure.external.legacy_sync.sync_service import IncrementalSyncOrchestrator
from erp_sync.infrastructure.external.legacy_sync.table_mappings import (
    build_incremental_specs,
    incremental_tables_from_settings,
)
from erp_sync.infrastructure.external.legacy_sync.types import new_document_id, utc_now
from erp_sync.shared.exceptions.domain import EntityNotFoundException, UnknownTablesException

ENTERPRISES_COLLECTION = "enterprises"


class ErpSyncUseCases:
    """
    Orquesta las corridas disparadas desde la API o el script CLI.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        store: FirestoreDocumentStore,
        settings: Settings,
    ) -> None:
        self._settings = settings
        self._store = store
        self._puller = SqlCursorPuller(engine)
        self._checkpoints = FirestoreCheckpointStore(store, collection=settings.ERP_CHECKPOINT_COLLECTION)
        self._job_log = FirestoreJobLog(store, collection=settings.ERP_JOBS_COLLECTION)
        self._orchestrator = IncrementalSyncOrchestrator(
            puller=self._puller,
            writer=BatchWriter(store, max_batch_size=settings.ERP_BATCH_SIZE),
            checkpoints=self._checkpoints,
            chunk_size=settings.ERP_CHUNK_SIZE,
            throttle_seconds=settings.throttle_seconds,
            pull_retries=settings.ERP_PULL_RETRIES,
        )

    async def run_incremental(
        self,
        dto: Optional[IncrementalSyncRequestDTO] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> IncrementalSyncResponseDTO:
        """
        Ejecuta el sync incremental de las tablas configuradas.

        Raises:
            MalformedMappingException: mapeo invalido (antes de tocar cualquier tabla)
            UnknownTablesException: la peticion nombra tablas no configuradas
        """
        dto = dto or IncrementalSyncRequestDTO()

        raw_mapping = dto.field_mapping if dto.field_mapping is not None else self._settings.ERP_FIELD_MAPPING
        field_mappings = parse_field_mappings(raw_mapping)
        tables = self._select_tables(dto.tables)

        results: Dict[str, Dict[str, Any]] = {}
        enterprise_id = await self._resolve_tenant(dto)

        specs = build_incremental_specs(
            tables=tables,
            field_mappings=field_mappings,
            tenant_id=enterprise_id,
            source_schema=self._settings.ERP_DB_SCHEMA or None,
        )

        if dto.reset:
            for spec in specs:
                await self._checkpoints.reset(spec.source_table)

        if self._settings.ERP_SYNC_CONCURRENT_TABLES:
            outcomes = await asyncio.gather(*(self._sync_one(s, cancel_event) for s in specs))
        else:
            outcomes = [await self._sync_one(s, cancel_event) for s in specs]

        for spec, outcome in zip(specs, outcomes):
            results[spec.target_collection] = outcome

        job_id = await self._record_job(results, enterprise_id)
        return IncrementalSyncResponseDTO(
            ok=True,
            results=results,
            enterprise_id=enterprise_id,
            job_id=job_id,
        )

    async def run_full_resync(self) -> FullResyncResponseDTO:
        """Resincroniza el mapa fijo de tablas completas (bootstrap)."""
        orchestrator = FullResyncOrchestrator(
            puller=self._puller,
            store=self._store,
            source_schema=self._settings.ERP_DB_SCHEMA or None,
        )
        report = await orchestrator.run()
        data = report.to_dict()
        return FullResyncResponseDTO(
            tables=data["tables"],
            skipped=data["skipped"],
            total_written=data["totalWritten"],
        )

    async def list_checkpoints(self) -> List[CheckpointDTO]:
        return [
            CheckpointDTO(table=c.table, last_position=c.last_position, updated_at=c.updated_at)
            for c in await self._checkpoints.list_all()
        ]

    async def reset_checkpoint(self, table: str) -> bool:
        """
        Raises:
            EntityNotFoundException: si la tabla no tiene checkpoint
        """
        if not await self._orchestrator.reset_checkpoint(table):
            raise EntityNotFoundException("Checkpoint", table)
        return True

    def _select_tables(self, requested: Optional[List[str]]) -> Dict[str, tuple]:
        configured = incremental_tables_from_settings(self._settings)
        if not requested:
            return configured

        by_table = {table: collection for collection, (table, _) in configured.items()}
        selected: Dict[str, tuple] = {}
        unknown: List[str] = []
        for name in requested:
            collection = name if name in configured else by_table.get(name)
            if collection is None:
                unknown.append(name)
                continue
            selected[collection] = configured[collection]

        if unknown:
            known = sorted(set(configured) | set(by_table))
            raise UnknownTablesException(unknown, known)
        return selected

    async def _resolve_tenant(self, dto: IncrementalSyncRequestDTO) -> Optional[str]:
        """
        Si viene un objeto empresa, se crea/actualiza en 'enterprises' y su id
        pasa a ser el tenant. Si no, se usa enterprise_id tal cual.
        """
        if dto.enterprise:
            enterprise_id = str(dto.enterprise.get("id") or new_document_id())
            data = {k: normalize_value(v) for k, v in dto.enterprise.items()}
            data.update({"id": enterprise_id, "importedAt": utc_now()})
            await self._store.set_merge(ENTERPRISES_COLLECTION, enterprise_id, data)
            logger.info(f"Empresa '{enterprise_id}' registrada como tenant del sync")
            return enterprise_id
        return dto.enterprise_id

    async def _sync_one(self, spec: TableSyncSpec, cancel_event: Optional[asyncio.Event]) -> Dict[str, Any]:
        try:
            result = await self._orchestrator.sync_table(spec, cancel_event=cancel_event)
            return result.to_summary()
        except Exception as e:
            # Frontera por tabla: el error no aborta las tablas hermanas
            logger.error(f"Error sincronizando '{spec.source_table}' -> '{spec.target_collection}': {e}")
            return {"error": getattr(e, "message", None) or str(e)}

    async def _record_job(self, results: Dict[str, Any], enterprise_id: Optional[str]) -> Optional[str]:
        summary: Dict[str, Any] = dict(results)
        if enterprise_id:
            summary["enterpriseId"] = enterprise_id
        try:
            return await self._job_log.append(summary)
        except Exception as e:
            logger.warning(f"No se pudo registrar el job en '{self._settings.ERP_JOBS_COLLECTION}': {e}")
            return None
