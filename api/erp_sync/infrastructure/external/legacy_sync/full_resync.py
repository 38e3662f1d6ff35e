"""
Resincronización completa ERP -> Firestore (sin checkpoint).

Pensada para el bootstrap inicial o recuperación ante desastre, no para
ejecutarse en cada ciclo:
- descubre las tablas presentes en el ERP y las cruza con un mapa fijo
- lee cada tabla entera en una sola query
- escribe fila por fila con merge; una fila con error se registra y se sigue
- una tabla ausente o ilegible se salta, no corta el resto de la corrida

Las filas sin id usan un id aleatorio nuevo: repetir la corrida duplica esas
filas en destino.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from loguru import logger

from erp_sync.shared.exceptions.sync import SourceUnavailableException

from .cursor_puller import SqlCursorPuller
from .firestore_store import FirestoreDocumentStore
from .row_transformer import transform_row
from .sync_config import TableSyncSpec
from .table_mappings import FULL_RESYNC_TABLES
from .types import utc_now


@dataclass
class TableResyncStats:
    collection: str
    rows: int = 0
    written: int = 0
    failed: int = 0
    identity_fallbacks: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "collection": self.collection,
            "rows": self.rows,
            "written": self.written,
            "failed": self.failed,
            "identityFallbacks": self.identity_fallbacks,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class FullResyncReport:
    tables: dict[str, TableResyncStats] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def total_written(self) -> int:
        return sum(t.written for t in self.tables.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "tables": {name: stats.to_dict() for name, stats in self.tables.items()},
            "skipped": list(self.skipped),
            "totalWritten": self.total_written,
        }


class FullResyncOrchestrator:
    def __init__(
        self,
        *,
        puller: SqlCursorPuller,
        store: FirestoreDocumentStore,
        source_schema: Optional[str] = None,
    ) -> None:
        self._puller = puller
        self._store = store
        self._source_schema = source_schema

    async def run(self, table_map: Iterable[TableSyncSpec] = FULL_RESYNC_TABLES) -> FullResyncReport:
        """
        Raises:
            SourceUnavailableException: solo si no se pudo listar las tablas del ERP.
        """
        report = FullResyncReport()
        available = set(await self._puller.list_tables(schema=self._source_schema))
        logger.info(f"Tablas encontradas en el ERP: {sorted(available)}")

        for spec in table_map:
            if spec.source_table not in available:
                logger.warning(f"Tabla '{spec.source_table}' no existe en el ERP. Se omite.")
                report.skipped.append(spec.source_table)
                continue

            report.tables[spec.source_table] = await self._resync_table(spec)

        logger.success(
            f"Resync completo terminado: {report.total_written} documento(s), "
            f"{len(report.skipped)} tabla(s) omitida(s)"
        )
        return report

    async def _resync_table(self, spec: TableSyncSpec) -> TableResyncStats:
        stats = TableResyncStats(collection=spec.target_collection)
        logger.info(f"Sincronizando '{spec.source_table}' -> colección '{spec.target_collection}' ...")

        try:
            rows = await self._puller.read_all(spec.source_table, schema=self._source_schema)
        except SourceUnavailableException as e:
            logger.error(f"No se pudo leer '{spec.source_table}': {e.message}")
            stats.error = e.message
            return stats

        stats.rows = len(rows)
        if not rows:
            logger.info(f"(tabla vacía '{spec.source_table}')")
            return stats

        for row in rows:
            transformed = transform_row(row, spec, run_at=utc_now(), timestamp_field="syncedAt")
            if transformed.identity_fallback:
                stats.identity_fallbacks += 1
            doc = transformed.document
            try:
                await self._store.set_merge(spec.target_collection, doc.id, doc.data)
                stats.written += 1
            except Exception as e:
                # Best-effort: una fila con error no detiene la tabla
                stats.failed += 1
                logger.error(f"Error sincronizando fila {doc.id} de '{spec.source_table}': {e}")

        if stats.identity_fallbacks:
            logger.warning(
                f"'{spec.source_table}': {stats.identity_fallbacks} fila(s) sin "
                f"{list(spec.effective_identity_candidates)}, se usaron ids aleatorios"
            )
        logger.info(
            f"Sincronizados {stats.written}/{stats.rows} registros de "
            f"'{spec.source_table}' -> '{spec.target_collection}'"
        )
        return stats
