"""
Routers de la API.

- `api_router` (/v1): administracion de tareas, logs, monitoreo, endpoints,
  fuentes de datos y configuracion
- `exec_router` (/exec): ejecucion de endpoints publicados
"""
from fastapi import APIRouter

from app.api.v1.endpoints import (
    api_definitions,
    data_sources,
    exec as exec_endpoints,
    logs,
    monitor,
    system_config,
    tasks,
)


# Router principal de la API v1
api_router = APIRouter(prefix="/v1")

api_router.include_router(tasks.router)
api_router.include_router(logs.router)
api_router.include_router(monitor.router)
api_router.include_router(api_definitions.router)
api_router.include_router(data_sources.router)
api_router.include_router(system_config.router)

# Endpoints publicados (fuera del versionado de la API de administracion)
exec_router = exec_endpoints.router
