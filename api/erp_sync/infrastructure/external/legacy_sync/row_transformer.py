"""
Transformación fila ERP -> documento Firestore.

Reglas:
- Columnas con entrada en el mapeo se renombran; el resto pasa tal cual
  (si el ERP agrega columnas nuevas, llegan al documento sin tocar código).
- Los valores se normalizan a tipos que Firestore acepta; nunca se levanta
  error por un campo individual.
- Valores ausentes quedan como None explícito: un campo borrado en origen
  debe distinguirse de un campo que no vino en la escritura parcial.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

from .sync_config import TableSyncSpec
from .types import SourceRow, TargetDocument, ensure_utc, new_document_id

TENANT_FIELD = "enterpriseId"


@dataclass(frozen=True)
class TransformedRow:
    document: TargetDocument
    # True si no hubo candidato estable y el id es aleatorio
    identity_fallback: bool


def normalize_value(value: Any) -> Any:
    """Convierte un valor del driver SQL a un tipo almacenable en Firestore."""
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, Decimal):
        # NUMERIC enteros (PKs incluidas) no pasan por float: perderian precision sobre 2**53
        if value.is_finite() and value == value.to_integral_value():
            integral = int(value)
            # Firestore guarda enteros de 64 bits con signo
            return integral if -2**63 <= integral < 2**63 else str(value)
        return float(value)

    if isinstance(value, timedelta):
        return value.total_seconds()

    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)

    if isinstance(value, time):
        return value.isoformat()

    if isinstance(value, uuid.UUID):
        return str(value)

    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [normalize_value(v) for v in value]

    # Tipos de driver exóticos (geometrías, rangos...): string legible
    return str(value)


def choose_document_id(values: Iterable[Mapping[str, Any]], candidates: Iterable[str]) -> Optional[str]:
    """
    Primer candidato con valor no nulo y no vacío (tras strip).

    `values` se recorre en orden para cada candidato: normalmente
    (documento mapeado, fila original), así un candidato puede nombrar la
    columna legacy o el campo ya renombrado.
    """
    sources = list(values)
    for candidate in candidates:
        for source in sources:
            raw = source.get(candidate)
            if raw is None:
                continue
            text = str(raw).strip()
            if text:
                return text
    return None


def transform_row(
    row: SourceRow,
    spec: TableSyncSpec,
    *,
    run_at: datetime,
    timestamp_field: str = "importedAt",
    id_factory: Callable[[], str] = new_document_id,
) -> TransformedRow:
    """
    Mapea una fila del ERP a un TargetDocument.

    El timestamp de corrida se sobreescribe en cada ejecución: registra la
    última vez que se vio la fila, no el historial de valores.
    """
    mapping = spec.field_mapping or {}

    data: dict[str, Any] = {}
    for column, value in row.items():
        data[mapping.get(column, column)] = normalize_value(value)

    if spec.tenant_id:
        data[TENANT_FIELD] = spec.tenant_id

    doc_id = choose_document_id((data, row), spec.effective_identity_candidates)
    fallback = doc_id is None
    if fallback:
        doc_id = id_factory()

    data["id"] = doc_id
    data[timestamp_field] = ensure_utc(run_at)
    return TransformedRow(document=TargetDocument(id=doc_id, data=data), identity_fallback=fallback)
