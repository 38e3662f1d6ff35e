"""
Middleware de ultima instancia para errores no mapeados.

Las AppException las resuelve el handler global de main.py; aqui solo llegan
fallos inesperados, que se registran con traceback y se responden como 500.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware


def internal_error_response(path: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "Error interno durante la sincronizacion",
            "details": {"path": path},
        },
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.opt(exception=exc).error(
                f"Error no manejado en {request.method} {request.url.path}: {exc}"
            )
            return internal_error_response(request.url.path)
