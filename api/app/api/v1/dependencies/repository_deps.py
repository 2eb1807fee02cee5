"""
Dependencias para obtener el contenedor de servicios y los repositorios.
"""
from fastapi import Depends, Request

from app.core.container import ServiceContainer
from app.infrastructure.repositories.api_definition_repository import ApiDefinitionRepository
from app.infrastructure.repositories.data_source_repository import DataSourceRepository
from app.infrastructure.repositories.sync_run_repository import SyncRunRepository
from app.infrastructure.repositories.sync_task_repository import SyncTaskRepository


def get_container(request: Request) -> ServiceContainer:
    """
    Contenedor creado en el startup (o inyectado en tests).

    Returns:
        ServiceContainer: Servicios de alcance de proceso
    """
    return request.app.state.container


def get_task_repository(container: ServiceContainer = Depends(get_container)) -> SyncTaskRepository:
    return container.task_repository


def get_run_repository(container: ServiceContainer = Depends(get_container)) -> SyncRunRepository:
    return container.run_repository


def get_api_repository(container: ServiceContainer = Depends(get_container)) -> ApiDefinitionRepository:
    return container.api_repository


def get_data_source_repository(container: ServiceContainer = Depends(get_container)) -> DataSourceRepository:
    return container.data_source_repository
