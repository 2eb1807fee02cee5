"""
Punto de entrada principal de la aplicación FastAPI.
Configura la aplicación, middlewares, rutas y eventos.
"""
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings, get_cors_origins
from app.core.container import ServiceContainer
from app.core.events import startup_handler, shutdown_handler
from app.api.v1.router import api_router, exec_router
from app.api.middlewares.error_handler import ErrorHandlerMiddleware, register_exception_handlers


def create_application(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Factory para crear y configurar la aplicación FastAPI.

    Args:
        container: Servicios ya construidos (tests); si es None se crean en el startup

    Returns:
        FastAPI: Instancia configurada de la aplicación
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Motor de sincronizacion de datos y endpoints definidos como flujo",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    application.state.container = container

    # Configurar CORS
    cors_origins = get_cors_origins(settings.CORS_ORIGINS)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware personalizado para manejo de errores
    application.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(application)

    # Registrar eventos de inicio y cierre
    application.add_event_handler("startup", startup_handler(application))
    application.add_event_handler("shutdown", shutdown_handler(application))

    # Incluir routers de la API
    application.include_router(api_router, prefix="/api")
    application.include_router(exec_router, prefix="/api")

    # Health check endpoint
    @application.get("/health", tags=["Health"])
    async def health_check():
        """Endpoint para verificar el estado de la aplicación."""
        container = application.state.container
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "scheduler_running": bool(container and container.lifecycle.scheduler.running),
        }

    return application


# Crear instancia de la aplicación
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
