"""
Lectura por chunks de tablas del ERP legacy (SQLAlchemy async).

Dos estrategias de paginación:
- Cursor por PK (recomendada): WHERE pk > :after ORDER BY pk ASC LIMIT :limit.
  Requiere que la PK tenga orden total, sea única y esté indexada.
- Offset (fallback para tablas sin PK usable): LIMIT :limit OFFSET :after.
  No es segura si la tabla cambia durante el sync: un INSERT/DELETE
  concurrente desplaza las filas y puede saltar o repetir registros.
  Úsala solo con tablas chicas o que cambian poco.

Este módulo no reintenta: cualquier error de conexión/query se levanta como
SourceUnavailableException y la política de reintento vive en el orquestador.
"""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from erp_sync.shared.exceptions.sync import SourceUnavailableException

from .types import Position, SourceRow


def build_chunk_query(
    table: str,
    primary_key_column: Optional[str],
    after_position: Position,
    limit: int,
    *,
    schema: Optional[str] = None,
) -> sa.Select:
    """
    Construye el SELECT de un chunk. Separado de la ejecución para poder
    inspeccionar el SQL en tests.
    """
    if limit <= 0:
        raise ValueError(f"limit debe ser positivo, se recibió {limit}")

    source = sa.table(table, schema=schema or None)
    query = sa.select(sa.literal_column("*")).select_from(source)

    if primary_key_column:
        pk = sa.column(primary_key_column)
        if after_position is not None:
            query = query.where(pk > sa.bindparam("after", after_position))
        return query.order_by(pk.asc()).limit(limit)

    offset = int(after_position or 0)
    return query.limit(limit).offset(offset)


class SqlCursorPuller:
    """
    Extrae chunks de filas desde el ERP.

    El engine lo crea y lo cierra el caller; aquí solo se piden conexiones
    del pool, una por chunk.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def pull(
        self,
        table: str,
        primary_key_column: Optional[str],
        after_position: Position,
        limit: int,
        *,
        schema: Optional[str] = None,
    ) -> list[SourceRow]:
        """
        Retorna hasta `limit` filas posteriores a `after_position`.

        Lista vacía = tabla agotada para esta pasada.
        """
        query = build_chunk_query(table, primary_key_column, after_position, limit, schema=schema)
        rows = await self._fetch(table, query)
        logger.debug(
            f"Chunk '{table}': {len(rows)} fila(s) "
            f"({'pk ' + primary_key_column if primary_key_column else 'offset'} > {after_position})"
        )
        return rows

    async def read_all(self, table: str, *, schema: Optional[str] = None) -> list[SourceRow]:
        """Lee la tabla completa en una sola query (resync completo)."""
        query = sa.select(sa.literal_column("*")).select_from(sa.table(table, schema=schema or None))
        return await self._fetch(table, query)

    async def list_tables(self, *, schema: Optional[str] = None) -> list[str]:
        """Descubre las tablas disponibles en el ERP."""
        try:
            async with self._engine.connect() as conn:
                return await conn.run_sync(
                    lambda sync_conn: sa.inspect(sync_conn).get_table_names(schema=schema or None)
                )
        except (SQLAlchemyError, OSError) as e:
            raise SourceUnavailableException("*", str(e)) from e

    async def _fetch(self, table: str, query: sa.Select) -> list[SourceRow]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(query)
                return [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            raise SourceUnavailableException(table, str(e)) from e
