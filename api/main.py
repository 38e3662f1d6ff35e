"""
Aplicación FastAPI del sincronizador ERP legacy -> Firestore.

Expone el disparo del sync incremental, el resync completo y la
administración de checkpoints. El engine del ERP y el cliente Firestore se
abren en el lifespan (ver erp_sync.core.events).
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from erp_sync.api.middlewares.error_handler import ErrorHandlerMiddleware
from erp_sync.api.v1.router import api_router
from erp_sync.core.config import get_cors_origins, settings
from erp_sync.core.events import lifespan
from erp_sync.infrastructure.external.legacy_sync.table_mappings import incremental_tables_from_settings
from erp_sync.shared.exceptions.base import AppException


def _add_middlewares(application: FastAPI) -> None:
    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Ultima red: cualquier excepcion no mapeada termina en 500 JSON
    application.add_middleware(ErrorHandlerMiddleware)


async def _app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Errores propios -> {error, message, details} con su status HTTP."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_application(*, with_lifespan: bool = True) -> FastAPI:
    """
    Construye la aplicación.

    Args:
        with_lifespan: False en tests; ahí el caso de uso se inyecta con
            dependency_overrides y no hace falta abrir conexiones reales.
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Sincronizador incremental ERP legacy -> Firestore",
        lifespan=lifespan if with_lifespan else None,
    )

    _add_middlewares(application)
    application.add_exception_handler(AppException, _app_exception_handler)
    application.include_router(api_router, prefix="/api")

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Estado del servicio y tablas que cubre el sync incremental."""
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "source_client": settings.ERP_DB_CLIENT,
            "tables": {
                collection: table
                for collection, (table, _) in incremental_tables_from_settings(settings).items()
            },
        }

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn
    from loguru import logger

    host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    logger.info(f"Docs:  http://{host}:{settings.PORT}/docs")
    logger.info(f"Sync:  POST http://{host}:{settings.PORT}/api/v1/erp/sync-incremental")

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
