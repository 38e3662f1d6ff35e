"""
CLI: ERP legacy -> Firestore (sync incremental / resync completo).

Uso recomendado:
  - Ejecutar el incremental como job (cron/systemd timer).
  - El resync completo es para bootstrap o recuperación, no para cada ciclo.

Variables de entorno:
  - ERP_DATABASE_URL (o ERP_DB_CLIENT / ERP_DB_HOST / ...)
  - FIRESTORE_PROJECT y GOOGLE_APPLICATION_CREDENTIALS
  - ERP_CHUNK_SIZE, ERP_BATCH_SIZE, ERP_THROTTLE_MS (opcionales)

Ejecución:
  python scripts/run_erp_sync.py
  python scripts/run_erp_sync.py --tables users assets --enterprise-id ent-1
  python scripts/run_erp_sync.py --reset --tables telemetry
  python scripts/run_erp_sync.py --full-resync
  python scripts/run_erp_sync.py --list-checkpoints

Ctrl+C durante el incremental corta la pasada al terminar el chunk en curso;
el checkpoint queda en el último chunk escrito.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from loguru import logger

# Cargar variables desde .env si existe, antes de construir Settings.
_API_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from erp_sync.application.dto.sync_dto import IncrementalSyncRequestDTO
from erp_sync.application.use_cases.sync_use_cases import ErpSyncUseCases
from erp_sync.core.config import settings
from erp_sync.core.events import configure_file_logging
from erp_sync.infrastructure.database.session import source_engine_scope
from erp_sync.infrastructure.external.legacy_sync.firestore_store import (
    FirestoreDocumentStore,
    create_firestore_client,
)


_CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincroniza tablas del ERP legacy hacia Firestore.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--full-resync",
        action="store_true",
        help="Relee las tablas completas del mapa fijo (sin checkpoints).",
    )
    mode.add_argument(
        "--list-checkpoints",
        action="store_true",
        help="Solo imprime los checkpoints guardados.",
    )
    parser.add_argument(
        "--tables",
        nargs="+",
        default=None,
        help="Subconjunto de tablas (coleccion destino o tabla origen).",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Borra los checkpoints de las tablas elegidas antes de sincronizar.",
    )
    parser.add_argument(
        "--enterprise-id",
        default=None,
        help="enterpriseId a estampar en cada documento.",
    )
    return parser


def _install_cancel_handler(cancel_event: asyncio.Event) -> bool:
    loop = asyncio.get_running_loop()
    try:
        for sig in _CANCEL_SIGNALS:
            loop.add_signal_handler(sig, cancel_event.set)
    except NotImplementedError:
        # Windows: sin handlers, Ctrl+C interrumpe de inmediato
        logger.debug("Señales no soportadas en este loop; cancelación cooperativa deshabilitada")
        return False
    return True


def _remove_cancel_handler() -> None:
    loop = asyncio.get_running_loop()
    for sig in _CANCEL_SIGNALS:
        loop.remove_signal_handler(sig)


async def run(args: argparse.Namespace) -> int:
    async with source_engine_scope(
        settings.effective_erp_database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    ) as engine:
        client = create_firestore_client(
            project=settings.FIRESTORE_PROJECT or None,
            database=settings.FIRESTORE_DATABASE or None,
        )
        use_cases = ErpSyncUseCases(
            engine=engine,
            store=FirestoreDocumentStore(client),
            settings=settings,
        )

        if args.list_checkpoints:
            for checkpoint in await use_cases.list_checkpoints():
                print(checkpoint.model_dump_json())
            return 0

        if args.full_resync:
            logger.info("Iniciando resync completo ERP -> Firestore...")
            report = await use_cases.run_full_resync()
            print(report.model_dump_json(indent=2))
            return 0

        cancel_event = asyncio.Event()
        handlers_installed = _install_cancel_handler(cancel_event)

        logger.info("Iniciando sync incremental ERP -> Firestore...")
        try:
            response = await use_cases.run_incremental(
                IncrementalSyncRequestDTO(
                    tables=args.tables,
                    reset=args.reset,
                    enterprise_id=args.enterprise_id,
                ),
                cancel_event=cancel_event,
            )
        finally:
            if handlers_installed:
                _remove_cancel_handler()
        print(json.dumps(response.model_dump(mode="json"), indent=2, ensure_ascii=False))

        failed = [c for c, r in response.results.items() if "error" in r]
        if failed:
            logger.error(f"Sync con errores en: {', '.join(failed)}")
            return 1
        return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_file_logging()
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
