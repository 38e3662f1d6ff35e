"""
Servicio de sincronización incremental ERP -> Firestore.

Diseño (resumen):
- Carga checkpoint (última PK u offset) desde Firestore (etlCheckpoints)
- Lee el ERP por chunks (> checkpoint, orden ascendente por PK)
- Mapea columnas y deriva un id estable por fila
- Merge-upsert por id en sub-batches atómicos
- Avanza el checkpoint al máximo visto en el chunk, DESPUÉS de escribirlo

Estrategia de idempotencia:
- Un corte entre la escritura y el guardado del checkpoint re-procesa el
  mismo chunk en la siguiente corrida; como la escritura es un merge-upsert
  por id, re-escribirlo no duplica documentos.
- Un fallo de lectura o escritura corta la pasada sin tocar el checkpoint,
  así la siguiente invocación retoma exactamente desde ese punto.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from google.api_core.exceptions import GoogleAPICallError
from loguru import logger

from erp_sync.shared.exceptions.sync import SourceUnavailableException, WriteFailureException

from .batch_writer import BatchWriter
from .checkpoint_store import FirestoreCheckpointStore
from .cursor_puller import SqlCursorPuller
from .row_transformer import normalize_value, transform_row
from .sync_config import TableSyncSpec
from .types import Position, SourceRow, SyncCheckpoint, SyncResult, SyncState, utc_now


def next_position(
    spec: TableSyncSpec,
    rows: list[SourceRow],
    previous: Position,
) -> Position:
    """
    Posición del checkpoint tras escribir `rows`.

    - Modo PK: máxima PK del chunk (nunca menor que la previa), en la forma
      normalizada con que se persiste: los drivers MySQL/SQL Server devuelven
      datetimes naive y el checkpoint guardado es UTC aware.
    - Modo offset: offset previo + largo del chunk.
    """
    if not spec.uses_cursor:
        return int(previous or 0) + len(rows)

    pk_values = [
        normalize_value(r[spec.primary_key_column])
        for r in rows
        if r.get(spec.primary_key_column) is not None
    ]
    if not pk_values:
        return previous
    chunk_max = max(pk_values)
    if previous is None:
        return chunk_max
    return max(normalize_value(previous), chunk_max)


class IncrementalSyncOrchestrator:
    """
    Orquestador del pipeline para una tabla.

    Un solo worker lógico por tabla: los chunks se procesan en orden de
    cursor porque el checkpoint depende de ese orden. Varias tablas pueden
    correr en paralelo con instancias (o llamadas) independientes.
    """

    def __init__(
        self,
        *,
        puller: SqlCursorPuller,
        writer: BatchWriter,
        checkpoints: FirestoreCheckpointStore,
        chunk_size: int = 2000,
        throttle_seconds: float = 0.05,
        pull_retries: int = 0,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size debe ser positivo, se recibió {chunk_size}")
        self._puller = puller
        self._writer = writer
        self._checkpoints = checkpoints
        self._chunk_size = chunk_size
        self._throttle_seconds = throttle_seconds
        self._pull_retries = pull_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s

    async def sync_table(
        self,
        spec: TableSyncSpec,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> SyncResult:
        """
        Ejecuta una pasada incremental completa para la tabla configurada.

        Raises:
            MalformedMappingException: antes de leer nada, si el mapeo es inválido.
        """
        result = SyncResult(table=spec.source_table, collection=spec.target_collection)
        spec.validate()

        result.state = SyncState.LOADING_CHECKPOINT
        checkpoint = await self._checkpoints.load(spec.source_table)
        position: Position = checkpoint.last_position if checkpoint else None
        result.final_position = position

        logger.info(
            f"Sync incremental: ERP '{spec.source_table}' -> Firestore '{spec.target_collection}' "
            f"({'pk ' + spec.primary_key_column if spec.uses_cursor else 'offset'} > {position})"
        )
        if not spec.uses_cursor:
            logger.warning(
                f"'{spec.source_table}' sin columna PK: se pagina por offset. "
                f"Inserts/deletes concurrentes en origen pueden saltar o repetir filas."
            )

        while True:
            if cancel_event is not None and cancel_event.is_set():
                result.state = SyncState.CANCELLED
                logger.warning(f"Sync de '{spec.source_table}' cancelado en posición {position}")
                return result

            result.state = SyncState.PULLING
            try:
                rows = await self._pull_with_retry(spec, position)
            except SourceUnavailableException as e:
                return self._fail(result, e)

            if not rows:
                break

            result.state = SyncState.TRANSFORMING
            run_at = utc_now()
            documents = []
            for row in rows:
                transformed = transform_row(row, spec, run_at=run_at)
                if transformed.identity_fallback:
                    result.identity_fallbacks += 1
                    logger.warning(
                        f"Fila de '{spec.source_table}' sin id estable "
                        f"(candidatos {list(spec.effective_identity_candidates)}); "
                        f"id aleatorio {transformed.document.id}. Una re-ejecución la duplicará."
                    )
                documents.append(transformed.document)

            result.state = SyncState.WRITING
            try:
                await self._writer.write_batch(spec.target_collection, documents)
            except WriteFailureException as e:
                return self._fail(result, e)

            result.records_processed += len(rows)
            result.chunks += 1

            result.state = SyncState.SAVING_CHECKPOINT
            position = next_position(spec, rows, position)
            try:
                saved: SyncCheckpoint = await self._checkpoints.save(spec.source_table, position)
            except (GoogleAPICallError, ValueError, TypeError) as e:
                # Chunk ya escrito: la próxima corrida lo re-escribe (merge idempotente)
                return self._fail(result, e)
            result.final_position = saved.last_position

            # Chunk incompleto: era el último, no hace falta otra lectura vacía
            if len(rows) < self._chunk_size:
                break

            await asyncio.sleep(self._throttle_seconds)

        result.state = SyncState.DONE
        logger.success(
            f"Sync '{spec.source_table}' completado. docs={result.records_processed}, "
            f"chunks={result.chunks}, lastPk={result.final_position}, "
            f"ids_aleatorios={result.identity_fallbacks}"
        )
        return result

    async def get_checkpoint(self, table: str) -> Optional[SyncCheckpoint]:
        return await self._checkpoints.load(table)

    async def reset_checkpoint(self, table: str) -> bool:
        return await self._checkpoints.reset(table)

    async def _pull_with_retry(self, spec: TableSyncSpec, position: Position) -> list[SourceRow]:
        """
        Lee un chunk reintentando errores de origen con backoff exponencial.
        """
        attempt = 0
        while True:
            try:
                return await self._puller.pull(
                    spec.source_table,
                    spec.primary_key_column,
                    position,
                    self._chunk_size,
                    schema=spec.source_schema,
                )
            except SourceUnavailableException as e:
                if attempt >= self._pull_retries:
                    raise
                sleep_s = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                logger.warning(
                    f"Origen no disponible para '{spec.source_table}' "
                    f"(intento {attempt + 1}/{self._pull_retries + 1}), reintentando en {sleep_s:.1f}s: {e.message}"
                )
                await asyncio.sleep(sleep_s)
                attempt += 1

    def _fail(self, result: SyncResult, error: Exception) -> SyncResult:
        result.state = SyncState.FAILED
        message = getattr(error, "message", None) or str(error)
        result.errors.append(message)
        logger.error(
            f"Sync '{result.table}' abortado; checkpoint se mantiene en {result.final_position}: {message}"
        )
        return result
