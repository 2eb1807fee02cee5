"""
Contenedor de servicios del proceso.

Agrupa las instancias de alcance de proceso (repositorios, directorio de
conexiones, pipeline con su pool de workers, LifecycleManager con su
scheduler e interprete de flujos). Se guarda en `app.state.container` y los
endpoints lo obtienen via dependencias.
"""
from dataclasses import dataclass
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import sessionmaker

from app.application.services.api_execution_service import ApiExecutionService
from app.infrastructure.connections.connection_directory import ConnectionDirectory
from app.infrastructure.flow.interpreter import FlowInterpreter
from app.infrastructure.repositories.api_definition_repository import ApiDefinitionRepository
from app.infrastructure.repositories.data_source_repository import DataSourceRepository
from app.infrastructure.repositories.sync_run_repository import SyncRunRepository
from app.infrastructure.repositories.sync_task_repository import SyncTaskRepository
from app.infrastructure.repositories.system_config_repository import SystemConfigRepository
from app.infrastructure.scheduling.lifecycle_manager import LifecycleManager
from app.infrastructure.sync.pipeline import SyncPipeline


@dataclass
class ServiceContainer:
    session_factory: sessionmaker
    task_repository: SyncTaskRepository
    run_repository: SyncRunRepository
    api_repository: ApiDefinitionRepository
    data_source_repository: DataSourceRepository
    config_repository: SystemConfigRepository
    connections: ConnectionDirectory
    pipeline: SyncPipeline
    lifecycle: LifecycleManager
    interpreter: FlowInterpreter
    api_execution: ApiExecutionService

    def shutdown(self) -> None:
        """Detiene scheduler y workers y cierra los engines de las fuentes."""
        self.lifecycle.shutdown()
        self.connections.dispose()


def build_container(
    session_factory: sessionmaker,
    connections: Optional[ConnectionDirectory] = None,
    pipeline: Optional[SyncPipeline] = None,
    scheduler: Optional[BackgroundScheduler] = None,
) -> ServiceContainer:
    """
    Construye el grafo de servicios sobre una session factory de metadatos.

    `connections` y `pipeline` se pueden inyectar (tests).
    """
    task_repository = SyncTaskRepository(session_factory)
    run_repository = SyncRunRepository(session_factory)
    api_repository = ApiDefinitionRepository(session_factory)
    data_source_repository = DataSourceRepository(session_factory)

    connections = connections or ConnectionDirectory(data_source_repository.get_by_id)
    pipeline = pipeline or SyncPipeline(run_repository, connections)
    lifecycle = LifecycleManager(task_repository, run_repository, pipeline, scheduler=scheduler)
    interpreter = FlowInterpreter(connections)

    return ServiceContainer(
        session_factory=session_factory,
        task_repository=task_repository,
        run_repository=run_repository,
        api_repository=api_repository,
        data_source_repository=data_source_repository,
        config_repository=SystemConfigRepository(session_factory),
        connections=connections,
        pipeline=pipeline,
        lifecycle=lifecycle,
        interpreter=interpreter,
        api_execution=ApiExecutionService(api_repository, interpreter),
    )
