"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends

from app.api.v1.dependencies.repository_deps import (
    get_api_repository,
    get_container,
    get_data_source_repository,
    get_run_repository,
    get_task_repository,
)
from app.application.services.api_execution_service import ApiExecutionService
from app.application.use_cases.api_definition_use_cases import ApiDefinitionUseCases
from app.application.use_cases.data_source_use_cases import DataSourceUseCases
from app.application.use_cases.monitor_use_cases import MonitorUseCases
from app.application.use_cases.sync_log_use_cases import SyncLogUseCases
from app.application.use_cases.system_config_use_cases import SystemConfigUseCases
from app.application.use_cases.task_use_cases import TaskUseCases
from app.core.container import ServiceContainer
from app.domain.repositories.api_definition_repository import IApiDefinitionRepository
from app.domain.repositories.data_source_repository import IDataSourceRepository
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.domain.repositories.sync_task_repository import ISyncTaskRepository


def get_task_use_cases(
    task_repository: ISyncTaskRepository = Depends(get_task_repository),
    run_repository: ISyncRunRepository = Depends(get_run_repository),
    container: ServiceContainer = Depends(get_container),
) -> TaskUseCases:
    """
    Dependencia para obtener los casos de uso de tareas.

    Returns:
        TaskUseCases: Casos de uso ligados al LifecycleManager del proceso
    """
    return TaskUseCases(task_repository, run_repository, container.lifecycle)


def get_sync_log_use_cases(
    run_repository: ISyncRunRepository = Depends(get_run_repository),
) -> SyncLogUseCases:
    return SyncLogUseCases(run_repository)


def get_monitor_use_cases(
    task_repository: ISyncTaskRepository = Depends(get_task_repository),
    run_repository: ISyncRunRepository = Depends(get_run_repository),
    container: ServiceContainer = Depends(get_container),
) -> MonitorUseCases:
    return MonitorUseCases(task_repository, run_repository, container.lifecycle)


def get_api_execution_service(container: ServiceContainer = Depends(get_container)) -> ApiExecutionService:
    return container.api_execution


def get_api_definition_use_cases(
    api_repository: IApiDefinitionRepository = Depends(get_api_repository),
    execution_service: ApiExecutionService = Depends(get_api_execution_service),
) -> ApiDefinitionUseCases:
    return ApiDefinitionUseCases(api_repository, execution_service)


def get_data_source_use_cases(
    data_source_repository: IDataSourceRepository = Depends(get_data_source_repository),
    container: ServiceContainer = Depends(get_container),
) -> DataSourceUseCases:
    """
    Dependencia para obtener los casos de uso de fuentes de datos.

    Args:
        data_source_repository: Repositorio de conexiones
        container: Contenedor (directorio de conexiones compartido)
    """
    return DataSourceUseCases(data_source_repository, container.connections)


def get_system_config_use_cases(container: ServiceContainer = Depends(get_container)) -> SystemConfigUseCases:
    return SystemConfigUseCases(container.config_repository)
