"""
Ciclo de vida de la API.

El startup abre el engine del ERP y el cliente Firestore y los deja en
app.state; el shutdown cierra el pool. Ningun componente del sync los crea por
su cuenta.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from erp_sync.core.config import settings
from erp_sync.infrastructure.database.session import create_source_engine
from erp_sync.infrastructure.external.legacy_sync.firestore_store import create_firestore_client


def startup_handler(app: FastAPI) -> Callable:
    """Devuelve la corrutina que abre engine y cliente Firestore en app.state."""
    async def startup() -> None:
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            configure_file_logging()

            _validate_config()

            app.state.source_engine = create_source_engine(
                settings.effective_erp_database_url,
                echo=settings.DEBUG,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
            )
            logger.info(f"Engine ERP creado ({settings.ERP_DB_CLIENT})")

            app.state.firestore_client = create_firestore_client(
                project=settings.FIRESTORE_PROJECT or None,
                database=settings.FIRESTORE_DATABASE or None,
            )
            logger.info("Cliente Firestore inicializado")

            logger.success("Sincronizador listo")

        except Exception as e:
            logger.opt(exception=e).error(f"No se pudo iniciar el sincronizador: {e}")
            raise

    return startup


def configure_file_logging() -> None:
    """Agrega el sink de archivo con rotacion (tambien usado por los scripts)."""
    logger.add(
        settings.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level="DEBUG" if settings.is_development else settings.LOG_LEVEL,
    )


def _validate_config() -> None:
    """Solo advierte: una config incompleta se nota en la primera corrida."""
    warnings = []

    if not settings.ERP_DATABASE_URL and not settings.ERP_DB_HOST:
        warnings.append("ERP_DATABASE_URL / ERP_DB_HOST no configurados - el sync no podra leer el ERP")

    if not settings.FIRESTORE_PROJECT:
        warnings.append("FIRESTORE_PROJECT no configurado - se usara el proyecto de las credenciales")

    if settings.ERP_CHUNK_SIZE < settings.ERP_BATCH_SIZE:
        warnings.append(
            f"ERP_CHUNK_SIZE ({settings.ERP_CHUNK_SIZE}) menor que ERP_BATCH_SIZE "
            f"({settings.ERP_BATCH_SIZE}): cada chunk sera un unico sub-batch"
        )

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """Devuelve la corrutina que libera el pool del ERP."""
    async def shutdown() -> None:
        logger.info("Cerrando sincronizador...")

        engine = getattr(app.state, "source_engine", None)
        if engine is not None:
            await engine.dispose()
            logger.info("Conexiones del ERP cerradas")

        app.state.firestore_client = None

        logger.success("Sincronizador detenido")

    return shutdown


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await startup_handler(app)()
    try:
        yield
    finally:
        await shutdown_handler(app)()
