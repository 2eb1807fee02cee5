"""
Casos de uso de tareas de sincronizacion.

Toda mutacion de una definicion se propaga al LifecycleManager para que el
trigger cron quede alineado con el estado persistido.
"""
from datetime import datetime
from typing import List, Optional

from loguru import logger

from app.application.dto.sync_log_dto import SyncLogDTO
from app.application.dto.task_dto import (
    CronPreviewDTO,
    TaskCreateDTO,
    TaskExecuteResponseDTO,
    TaskResponseDTO,
    TaskUpdateDTO,
)
from app.domain.entities.sync_task import SyncTaskDefinition
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.domain.repositories.sync_task_repository import ISyncTaskRepository
from app.infrastructure.scheduling.cron import build_cron_trigger, next_executions
from app.infrastructure.scheduling.lifecycle_manager import LifecycleManager
from app.shared.constants.sync_constants import TaskStatus, TaskType
from app.shared.exceptions.domain import EntityNotFoundException, ValidationException


class TaskUseCases:
    """
    Casos de uso para el arbol de tareas.
    """

    def __init__(
        self,
        task_repository: ISyncTaskRepository,
        run_repository: ISyncRunRepository,
        lifecycle: LifecycleManager,
    ):
        self.task_repository = task_repository
        self.run_repository = run_repository
        self.lifecycle = lifecycle

    def create_task(self, dto: TaskCreateDTO) -> TaskResponseDTO:
        """
        Crea una tarea (o carpeta) y programa su trigger si corresponde.

        Raises:
            ValidationException: cron invalido o carpeta padre inexistente
        """
        self._validate_cron(dto.cron)
        self._validate_parent(dto.parent_id)

        task = SyncTaskDefinition(
            name=dto.name,
            type=dto.type,
            parent_id=dto.parent_id,
            description=dto.description,
            cron=dto.cron,
            content=dto.content,
            status=dto.status,
        )
        created = self.task_repository.create(task)
        self.lifecycle.reschedule_task(created)
        logger.info(f"Tarea {created.id} ({created.name}) creada")
        return self._to_response_dto(created)

    def get_task(self, task_id: int) -> TaskResponseDTO:
        return self._to_response_dto(self._get_or_raise(task_id))

    def list_tasks(self, task_type: Optional[TaskType] = None) -> List[TaskResponseDTO]:
        if task_type is not None:
            tasks = self.task_repository.find_all_by_type(task_type)
        else:
            tasks = self.task_repository.get_all()
        return [self._to_response_dto(t) for t in tasks]

    def update_task(self, task_id: int, dto: TaskUpdateDTO) -> TaskResponseDTO:
        """
        Actualiza los campos enviados y recalcula el trigger.

        Raises:
            EntityNotFoundException: la tarea no existe
            ValidationException: cron invalido
        """
        task = self._get_or_raise(task_id)
        fields = dto.model_dump(exclude_unset=True)

        if "cron" in fields:
            self._validate_cron(fields["cron"])
        if "parent_id" in fields:
            if fields["parent_id"] == task_id:
                raise ValidationException("Una tarea no puede ser su propia carpeta", field="parentId")
            self._validate_parent(fields["parent_id"])

        for name, value in fields.items():
            setattr(task, name, value)

        updated = self.task_repository.update(task)
        self.lifecycle.reschedule_task(updated)
        logger.info(f"Tarea {task_id} actualizada")
        return self._to_response_dto(updated)

    def delete_task(self, task_id: int) -> bool:
        """
        Elimina la tarea y su trigger. Las carpetas deben estar vacias.
        El historial de ejecuciones se conserva.
        """
        task = self._get_or_raise(task_id)
        if task.is_folder and any(t.parent_id == task_id for t in self.task_repository.get_all()):
            raise ValidationException("La carpeta no esta vacia", field="id")

        self.lifecycle.unschedule_task(task_id)
        deleted = self.task_repository.delete(task_id)
        logger.info(f"Tarea {task_id} eliminada")
        return deleted

    def copy_task(self, task_id: int) -> TaskResponseDTO:
        """Duplica la tarea como `<nombre>_copy`, siempre deshabilitada."""
        original = self._get_or_raise(task_id)
        copy = SyncTaskDefinition(
            name=f"{original.name}_copy",
            type=original.type,
            parent_id=original.parent_id,
            description=original.description,
            cron=original.cron,
            content=original.content,
            status=TaskStatus.DISABLED,
        )
        return self._to_response_dto(self.task_repository.create(copy))

    def import_task(self, dto: TaskCreateDTO) -> TaskResponseDTO:
        """Importa una tarea exportada (siempre se crea con un id nuevo)."""
        return self.create_task(dto)

    def execute_task(self, task_id: int) -> TaskExecuteResponseDTO:
        """Inicia una ejecucion manual asincrona."""
        run_id = self.lifecycle.run_sync_task(task_id)
        return TaskExecuteResponseDTO(task_id=task_id, run_id=run_id, message="Task started")

    def get_latest_log(self, task_id: int) -> SyncLogDTO:
        run = self.run_repository.find_latest_for_task(task_id)
        if run is None:
            raise EntityNotFoundException("SyncLog", f"task={task_id}")
        return SyncLogDTO.model_validate(run)

    @staticmethod
    def preview_cron(cron: str, count: int = 5) -> CronPreviewDTO:
        """Proximas fechas de disparo de una expresion cron."""
        if count < 1 or count > 50:
            raise ValidationException("count debe estar entre 1 y 50", field="count")
        fire_times: List[datetime] = next_executions(cron, count)
        return CronPreviewDTO(cron=cron, next_executions=fire_times)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_or_raise(self, task_id: int) -> SyncTaskDefinition:
        task = self.task_repository.get_by_id(task_id)
        if task is None:
            raise EntityNotFoundException("SyncTask", task_id)
        return task

    def _validate_parent(self, parent_id: Optional[int]) -> None:
        if parent_id is None:
            return
        parent = self.task_repository.get_by_id(parent_id)
        if parent is None or not parent.is_folder:
            raise ValidationException(f"La carpeta {parent_id} no existe", field="parentId")

    @staticmethod
    def _validate_cron(cron: Optional[str]) -> None:
        if cron and cron.strip():
            build_cron_trigger(cron)

    @staticmethod
    def _to_response_dto(task: SyncTaskDefinition) -> TaskResponseDTO:
        return TaskResponseDTO.model_validate(task)
