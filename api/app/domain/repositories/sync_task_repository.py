"""
Interfaz del repositorio de definiciones de tareas.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from app.domain.entities.sync_task import SyncTaskDefinition
from app.shared.constants.sync_constants import TaskType


class ISyncTaskRepository(ABC):
    """Operaciones de persistencia para SyncTaskDefinition."""

    @abstractmethod
    def create(self, task: SyncTaskDefinition) -> SyncTaskDefinition:
        pass

    @abstractmethod
    def get_by_id(self, task_id: int) -> Optional[SyncTaskDefinition]:
        pass

    @abstractmethod
    def get_all(self) -> List[SyncTaskDefinition]:
        pass

    @abstractmethod
    def find_all_by_type(self, task_type: TaskType) -> List[SyncTaskDefinition]:
        pass

    @abstractmethod
    def update(self, task: SyncTaskDefinition) -> SyncTaskDefinition:
        pass

    @abstractmethod
    def delete(self, task_id: int) -> bool:
        pass
