"""
Configuración del sync (tabla legacy -> colección Firestore).

La idea es que aquí tengas control total de:
- tabla origen en el ERP
- colección destino en Firestore
- columna PK usada como cursor (o None para paginar por offset)
- columnas candidatas a id del documento
- renombrado de campos

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from erp_sync.shared.exceptions.sync import MalformedMappingException

DEFAULT_IDENTITY_CANDIDATES: tuple[str, ...] = ("id", "vin", "uuid", "asset_id", "user_id")


@dataclass(frozen=True)
class TableSyncSpec:
    """
    Config de una tabla legacy -> una colección Firestore.

    NOTA sobre la identidad:
    - El id del documento sale de identity_candidates, en el orden dado.
    - Si la tabla tiene PK, se agrega al final de los candidatos cuando el
      caller no la incluyó, así una fila con la misma PK siempre cae en el
      mismo documento.
    - Sin ningún candidato con valor se genera un id aleatorio: una re-ejecución
      crea un documento nuevo para esa fila.
    """

    source_table: str
    target_collection: str
    primary_key_column: Optional[str] = None
    identity_candidates: tuple[str, ...] = DEFAULT_IDENTITY_CANDIDATES
    field_mapping: Optional[Mapping[str, str]] = None
    tenant_id: Optional[str] = None
    source_schema: Optional[str] = None
    description: Optional[str] = field(default=None, compare=False)

    @property
    def effective_identity_candidates(self) -> tuple[str, ...]:
        candidates = tuple(self.identity_candidates)
        if self.primary_key_column and self.primary_key_column not in candidates:
            candidates = candidates + (self.primary_key_column,)
        return candidates

    @property
    def uses_cursor(self) -> bool:
        """True si se pagina por PK; False si se cae a offset."""
        return bool(self.primary_key_column)

    def validate(self) -> None:
        """Falla rápido si el mapeo no es un dict str -> str utilizable."""
        validate_field_mapping(self.field_mapping, collection=self.target_collection)


def validate_field_mapping(mapping: Any, *, collection: Optional[str] = None) -> None:
    if mapping is None:
        return
    if not isinstance(mapping, Mapping):
        raise MalformedMappingException(
            f"se esperaba un objeto, se recibió {type(mapping).__name__}",
            collection=collection,
        )
    targets: dict[str, str] = {}
    for source, target in mapping.items():
        if not isinstance(source, str) or not source:
            raise MalformedMappingException(f"columna origen inválida: {source!r}", collection=collection)
        if not isinstance(target, str) or not target.strip():
            raise MalformedMappingException(
                f"campo destino inválido para '{source}': {target!r}", collection=collection
            )
        if target in targets:
            raise MalformedMappingException(
                f"'{source}' y '{targets[target]}' apuntan al mismo campo '{target}'",
                collection=collection,
            )
        targets[target] = source


def parse_field_mappings(raw: Any) -> dict[str, dict[str, str]]:
    """
    Parsea el mapeo global {coleccion: {columna_legacy: campo_destino}}.

    Acepta el string JSON de ERP_FIELD_MAPPING o un dict ya decodificado.
    String vacío o None significa "sin mapeo".
    """
    if raw is None:
        return {}
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedMappingException(f"JSON no parseable ({e.msg})") from e

    if not isinstance(raw, Mapping):
        raise MalformedMappingException(
            f"se esperaba un objeto por colección, se recibió {type(raw).__name__}"
        )

    parsed: dict[str, dict[str, str]] = {}
    for collection, mapping in raw.items():
        validate_field_mapping(mapping, collection=str(collection))
        parsed[str(collection)] = dict(mapping)
    return parsed
