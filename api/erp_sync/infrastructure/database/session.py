"""
Gestión de la conexión a la base legacy (ERP).

No hay engine global: el caller crea el engine (startup de la API o script),
lo pasa a los componentes y lo cierra al terminar.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


def _create_engine_args(url: str, *, echo: bool, pool_size: int, max_overflow: int) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    Los servidores usan pool de conexiones, SQLite no lo soporta.
    """
    args = {
        "echo": echo,
    }

    if not url.startswith("sqlite"):
        args.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })

    return args


def create_source_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
) -> AsyncEngine:
    """
    Crea el engine async de la base legacy.

    Args:
        url: URL async de SQLAlchemy (postgresql+asyncpg://, mysql+aiomysql://, ...)
    """
    return create_async_engine(
        url,
        **_create_engine_args(url, echo=echo, pool_size=pool_size, max_overflow=max_overflow),
    )


@asynccontextmanager
async def source_engine_scope(url: str, **kwargs) -> AsyncIterator[AsyncEngine]:
    """
    Engine con liberacion garantizada del pool al salir del bloque.

    Uso:
        async with source_engine_scope(settings.effective_erp_database_url) as engine:
            ...
    """
    engine = create_source_engine(url, **kwargs)
    try:
        yield engine
    finally:
        await engine.dispose()
