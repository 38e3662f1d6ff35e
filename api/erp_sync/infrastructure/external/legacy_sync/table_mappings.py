"""
Mapeos tabla ERP -> colección Firestore.

Este es el punto recomendado para que tengas "control total" sobre:
- qué tablas del ERP se sincronizan y hacia qué colección
- qué columna actúa como cursor incremental
- qué columnas identifican a cada documento

Dos juegos de tablas:
- INCREMENTAL: 4 tablas renombrables por configuración, con checkpoint.
- FULL_RESYNC: mapa fijo usado para bootstrap / recuperación ante desastre.
"""

from __future__ import annotations

from typing import Mapping, Optional

from .sync_config import DEFAULT_IDENTITY_CANDIDATES, TableSyncSpec


def build_incremental_specs(
    *,
    tables: Mapping[str, tuple[str, Optional[str]]],
    field_mappings: Optional[Mapping[str, Mapping[str, str]]] = None,
    tenant_id: Optional[str] = None,
    source_schema: Optional[str] = None,
) -> list[TableSyncSpec]:
    """
    Construye las TableSyncSpec del sync incremental.

    Args:
        tables: {coleccion_destino: (tabla_origen, columna_pk)}
        field_mappings: {coleccion_destino: {columna_legacy: campo_destino}}
        tenant_id: enterpriseId a estampar en todos los documentos
        source_schema: schema del ERP (None = schema por defecto de la conexión)
    """
    field_mappings = field_mappings or {}
    specs = []
    for collection, (table, pk_column) in tables.items():
        specs.append(
            TableSyncSpec(
                source_table=table,
                target_collection=collection,
                primary_key_column=pk_column or None,
                identity_candidates=DEFAULT_IDENTITY_CANDIDATES,
                field_mapping=field_mappings.get(collection),
                tenant_id=tenant_id,
                source_schema=source_schema,
            )
        )
    return specs


def incremental_tables_from_settings(settings) -> dict[str, tuple[str, Optional[str]]]:
    """Tablas incrementales por defecto: enterprises, users, assets, telemetry."""
    return {
        "enterprises": (settings.ERP_TABLE_ENTERPRISE, settings.ERP_PK_ENTERPRISE),
        "users": (settings.ERP_TABLE_USERS, settings.ERP_PK_USERS),
        "assets": (settings.ERP_TABLE_ASSETS, settings.ERP_PK_ASSETS),
        "telemetry": (settings.ERP_TABLE_TELEMETRY, settings.ERP_PK_TELEMETRY),
    }


def _full_resync_spec(table: str, collection: str, id_column: str) -> TableSyncSpec:
    return TableSyncSpec(
        source_table=table,
        target_collection=collection,
        primary_key_column=None,
        identity_candidates=(id_column,),
    )


# Mapa exacto tabla -> colección para la resincronización completa.
FULL_RESYNC_TABLES: tuple[TableSyncSpec, ...] = (
    _full_resync_spec("enterprises", "enterprises", "enterprise_id"),
    _full_resync_spec("users", "users", "user_id"),
    _full_resync_spec("vehicles", "vehicles", "vehicle_id"),
    _full_resync_spec("telemetry_data", "telemetry", "telemetry_id"),
    _full_resync_spec("assets", "assets", "asset_id"),
    _full_resync_spec("analytics", "analytics", "analytics_id"),
)
