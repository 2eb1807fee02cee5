"""
Manejadores de eventos de inicio y cierre de la aplicacion.

Inicio:
1. Sink de archivo de loguru
2. Tablas de metadatos y configuracion por defecto
3. Contenedor de servicios (si no fue inyectado)
4. LifecycleManager: recuperacion de ejecuciones huerfanas y luego triggers

Cierre: scheduler, pool de workers, engines de las fuentes y base de metadatos.
"""
from typing import Callable

from fastapi import FastAPI
from loguru import logger

from app.core.config import settings
from app.core.container import ServiceContainer, build_container
from app.infrastructure.database.session import close_db, get_session_factory, init_db


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            container: ServiceContainer = getattr(app.state, "container", None)
            if container is None:
                container = build_container(get_session_factory())
                app.state.container = container

            # Crea tablas si no existen
            init_db(container.session_factory.kw.get("bind"))
            logger.info("Base de datos inicializada")

            container.config_repository.seed_defaults()

            # La recuperacion ocurre antes de instalar cualquier trigger
            container.lifecycle.start(enable_scheduler=settings.SCHEDULER_ENABLED)

            logger.success("Aplicacion iniciada correctamente")
            _print_available_urls()

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  API v1:      {base_url}/api/v1</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Endpoints:   {base_url}/api/exec/...</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        container: ServiceContainer = getattr(app.state, "container", None)
        if container is not None:
            container.shutdown()
            logger.info("Scheduler y workers de sincronizacion detenidos")

        close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown
