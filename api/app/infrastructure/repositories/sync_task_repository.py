"""
Implementacion del repositorio de definiciones de tareas usando SQLAlchemy.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.domain.entities.sync_task import SyncTaskDefinition
from app.domain.repositories.sync_task_repository import ISyncTaskRepository
from app.infrastructure.database.models import SyncTaskModel
from app.shared.constants.sync_constants import TaskStatus, TaskType
from app.shared.exceptions.domain import EntityNotFoundException


class SyncTaskRepository(ISyncTaskRepository):
    """Repositorio de SyncTaskDefinition sobre la tabla sync_task."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, task: SyncTaskDefinition) -> SyncTaskDefinition:
        """Crea una tarea o carpeta nueva."""
        with self._session_factory.begin() as session:
            db_task = SyncTaskModel(
                name=task.name,
                type=task.type.value,
                parent_id=task.parent_id,
                description=task.description,
                cron=task.cron,
                content=task.content,
                status=task.status.value,
            )
            session.add(db_task)
            session.flush()
            session.refresh(db_task)
            return self._to_entity(db_task)

    def get_by_id(self, task_id: int) -> Optional[SyncTaskDefinition]:
        with self._session_factory() as session:
            db_task = session.get(SyncTaskModel, task_id)
            return self._to_entity(db_task) if db_task else None

    def get_all(self) -> List[SyncTaskDefinition]:
        with self._session_factory() as session:
            rows = session.execute(select(SyncTaskModel).order_by(SyncTaskModel.id)).scalars().all()
            return [self._to_entity(r) for r in rows]

    def find_all_by_type(self, task_type: TaskType) -> List[SyncTaskDefinition]:
        with self._session_factory() as session:
            rows = session.execute(
                select(SyncTaskModel).where(SyncTaskModel.type == task_type.value).order_by(SyncTaskModel.id)
            ).scalars().all()
            return [self._to_entity(r) for r in rows]

    def update(self, task: SyncTaskDefinition) -> SyncTaskDefinition:
        """Actualiza una tarea existente."""
        with self._session_factory.begin() as session:
            db_task = session.get(SyncTaskModel, task.id)
            if db_task is None:
                raise EntityNotFoundException("SyncTask", task.id)

            db_task.name = task.name
            db_task.type = task.type.value
            db_task.parent_id = task.parent_id
            db_task.description = task.description
            db_task.cron = task.cron
            db_task.content = task.content
            db_task.status = task.status.value

            session.flush()
            session.refresh(db_task)
            return self._to_entity(db_task)

    def delete(self, task_id: int) -> bool:
        with self._session_factory.begin() as session:
            db_task = session.get(SyncTaskModel, task_id)
            if db_task is None:
                return False
            session.delete(db_task)
            return True

    @staticmethod
    def _to_entity(db_task: SyncTaskModel) -> SyncTaskDefinition:
        return SyncTaskDefinition(
            id=db_task.id,
            name=db_task.name,
            type=TaskType(db_task.type or TaskType.TASK.value),
            parent_id=db_task.parent_id,
            description=db_task.description,
            cron=db_task.cron,
            content=db_task.content,
            status=TaskStatus(db_task.status or TaskStatus.DISABLED.value),
            created_at=db_task.created_at,
            updated_at=db_task.updated_at,
        )
