"""
Configuración de fixtures para pytest.

Los tests corren sobre archivos SQLite temporales:
- una base de metadatos (tareas, ejecuciones, endpoints, fuentes)
- una base por cada fuente de datos registrada (origen y destino)

Las variables de entorno se fijan antes de importar `app` para que el engine
global de metadatos no apunte a PostgreSQL.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.engine import Engine

from app.domain.entities.data_source import DataSourceDescriptor
from app.infrastructure.connections.connection_directory import ConnectionDirectory
from app.infrastructure.database.session import build_engine, build_session_factory, init_db
from app.infrastructure.repositories.api_definition_repository import ApiDefinitionRepository
from app.infrastructure.repositories.data_source_repository import DataSourceRepository
from app.infrastructure.repositories.sync_run_repository import SyncRunRepository
from app.infrastructure.repositories.sync_task_repository import SyncTaskRepository
from app.infrastructure.repositories.system_config_repository import SystemConfigRepository
from app.infrastructure.scheduling.lifecycle_manager import LifecycleManager
from app.infrastructure.sync.pipeline import SyncPipeline
from app.infrastructure.sync.retry import RetryPolicy
from app.infrastructure.sync.sql_gateway import SqlGateway
from app.infrastructure.sync.worker_pool import BoundedExecutor
from tests.support import enable_wal


class SqliteConnectionDirectory(ConnectionDirectory):
    """Directorio de conexiones que abre un archivo SQLite por fuente."""

    def __init__(self, lookup, base_dir: Path):
        super().__init__(lookup)
        self._base_dir = base_dir

    def build_url(self, descriptor: DataSourceDescriptor) -> str:
        return f"sqlite:///{self._base_dir / descriptor.database}"

    def engine_options(self, descriptor: DataSourceDescriptor) -> Dict[str, Any]:
        return {"connect_args": {"check_same_thread": False, "timeout": 30}, "future": True}


# ----------------------------------------------------------------------
# Base de metadatos y repositorios
# ----------------------------------------------------------------------

@pytest.fixture
def metadata_engine(tmp_path: Path):
    """Engine de metadatos sobre un archivo temporal, con las tablas creadas."""
    engine = build_engine(f"sqlite:///{tmp_path / 'metadata.db'}")
    enable_wal(engine)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(metadata_engine):
    return build_session_factory(metadata_engine)


@pytest.fixture
def task_repository(session_factory) -> SyncTaskRepository:
    return SyncTaskRepository(session_factory)


@pytest.fixture
def run_repository(session_factory) -> SyncRunRepository:
    return SyncRunRepository(session_factory)


@pytest.fixture
def data_source_repository(session_factory) -> DataSourceRepository:
    return DataSourceRepository(session_factory)


@pytest.fixture
def api_repository(session_factory) -> ApiDefinitionRepository:
    return ApiDefinitionRepository(session_factory)


@pytest.fixture
def config_repository(session_factory) -> SystemConfigRepository:
    return SystemConfigRepository(session_factory)


# ----------------------------------------------------------------------
# Fuentes de datos
# ----------------------------------------------------------------------

@pytest.fixture
def connections(tmp_path: Path, data_source_repository):
    directory = SqliteConnectionDirectory(data_source_repository.get_by_id, tmp_path)
    yield directory
    directory.dispose()


def _register(repository: DataSourceRepository, name: str, database: str) -> DataSourceDescriptor:
    return repository.create(DataSourceDescriptor(
        id=None,
        name=name,
        kind="SQLITE",
        host="localhost",
        port=0,
        database=database,
        username="",
        password="",
    ))


@pytest.fixture
def source_ds(data_source_repository, connections) -> DataSourceDescriptor:
    descriptor = _register(data_source_repository, "origen", "source.db")
    enable_wal(connections.engine_for(descriptor.id))
    return descriptor


@pytest.fixture
def target_ds(data_source_repository, connections) -> DataSourceDescriptor:
    descriptor = _register(data_source_repository, "destino", "target.db")
    enable_wal(connections.engine_for(descriptor.id))
    return descriptor


@pytest.fixture
def source_engine(connections, source_ds) -> Engine:
    return connections.engine_for(source_ds.id)


@pytest.fixture
def target_engine(connections, target_ds) -> Engine:
    return connections.engine_for(target_ds.id)


# ----------------------------------------------------------------------
# Pipeline y scheduler
# ----------------------------------------------------------------------

@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Politica sin esperas para no demorar los tests."""
    return RetryPolicy(max_attempts=5, base_seconds=0, max_jitter_seconds=0)


@pytest.fixture
def executor():
    pool = BoundedExecutor(max_workers=2, queue_size=2, thread_name_prefix="test-sync-")
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def gateway() -> SqlGateway:
    return SqlGateway(truncate_lock_timeout=5, worker_lock_timeout=5)


@pytest.fixture
def pipeline(run_repository, connections, executor, gateway, retry_policy) -> SyncPipeline:
    return SyncPipeline(
        run_repository,
        connections,
        executor=executor,
        gateway=gateway,
        retry_policy=retry_policy,
        default_batch_size=100,
    )


@pytest.fixture
def scheduler():
    sched = BackgroundScheduler(timezone="UTC")
    yield sched
    if sched.running:
        sched.shutdown(wait=False)


@pytest.fixture
def lifecycle(task_repository, run_repository, pipeline, scheduler) -> LifecycleManager:
    manager = LifecycleManager(task_repository, run_repository, pipeline, scheduler=scheduler, timezone="UTC")
    yield manager
    for task_id in list(manager._manual_threads):
        manager.wait_for_task(task_id, timeout=10)


# ----------------------------------------------------------------------
# Flujos de sincronizacion
# ----------------------------------------------------------------------

@pytest.fixture
def make_sync_flow(source_ds, target_ds) -> Callable[..., str]:
    """
    Construye el JSON de un flujo INPUT -> MAPPING -> OUTPUT sobre src_users.

    Los argumentos con nombre sobreescriben la configuracion del nodo de salida.
    """
    def _build(
        sql: str = "SELECT id, name, age FROM src_users ORDER BY id",
        batch_size: int = 3,
        mappings: Optional[List[Dict[str, str]]] = None,
        **output: Any,
    ) -> str:
        output_data: Dict[str, Any] = {
            "dataSourceId": str(target_ds.id),
            "tableName": "dst_users",
            "writeMode": "APPEND",
            "conflictStrategy": "UPDATE",
            "primaryKey": "user_id",
            "fields": [
                {"name": "user_id", "type": "INTEGER", "isPk": True},
                {"name": "full_name", "type": "VARCHAR(255)"},
                {"name": "age", "type": "INTEGER"},
            ],
        }
        output_data.update(output)
        if mappings is None:
            mappings = [
                {"source": "id", "target": "user_id"},
                {"source": "name", "target": "full_name"},
                {"source": "age", "target": "age"},
            ]
        return json.dumps({
            "nodes": [
                {"id": "in", "type": "input", "data": {
                    "dataSourceId": str(source_ds.id), "sql": sql, "batchSize": batch_size,
                }},
                {"id": "map", "type": "mapping", "data": {"mappings": mappings}},
                {"id": "out", "type": "output", "data": output_data},
            ],
            "edges": [
                {"source": "in", "target": "map"},
                {"source": "map", "target": "out"},
            ],
        })

    return _build
