"""
Manejo centralizado de errores de la API.

- AppException (y subclases) -> `{"error", "message", "details"}` con su status
- Cualquier otra excepcion -> 500 generico (ErrorHandlerMiddleware)
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.shared.exceptions.base import AppException


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Traduce una AppException a su respuesta JSON."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.error_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(),
    )


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(AppException, app_exception_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Captura errores no controlados y responde un 500 generico."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            # Escapar llaves: loguru formatea el mensaje cuando recibe kwargs
            error_msg = str(exc).replace("{", "{{").replace("}", "}}")
            logger.opt(exception=exc).error(f"Error no manejado en {request.method} {request.url.path}: {error_msg}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "INTERNAL_SERVER_ERROR",
                    "message": "Ha ocurrido un error interno del servidor",
                    "details": {},
                },
            )
