"""
Endpoints del arbol de tareas de sincronizacion.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.dependencies.use_case_deps import get_task_use_cases
from app.application.dto.sync_log_dto import SyncLogDTO
from app.application.dto.task_dto import (
    CronPreviewDTO,
    TaskCreateDTO,
    TaskExecuteResponseDTO,
    TaskResponseDTO,
    TaskUpdateDTO,
)
from app.application.use_cases.task_use_cases import TaskUseCases
from app.shared.constants.sync_constants import TaskType


router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.get(
    "/cron/next-executions",
    response_model=CronPreviewDTO,
    summary="Proximas ejecuciones de una expresion cron"
)
def preview_cron(
    cron: str = Query(..., min_length=1),
    count: int = Query(5, ge=1, le=50),
) -> CronPreviewDTO:
    return TaskUseCases.preview_cron(cron, count)


@router.post(
    "/",
    response_model=TaskResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Crear una tarea o carpeta"
)
def create_task(
    dto: TaskCreateDTO,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> TaskResponseDTO:
    """
    Crea la tarea y programa su trigger si esta habilitada y tiene cron.

    Args:
        dto: Datos de la tarea
        use_cases: Casos de uso de tareas (inyectado)
    """
    return use_cases.create_task(dto)


@router.get(
    "/",
    response_model=List[TaskResponseDTO],
    summary="Listar tareas"
)
def list_tasks(
    type: Optional[TaskType] = None,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> List[TaskResponseDTO]:
    return use_cases.list_tasks(type)


@router.post(
    "/import",
    response_model=TaskResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Importar una tarea exportada"
)
def import_task(
    dto: TaskCreateDTO,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> TaskResponseDTO:
    return use_cases.import_task(dto)


@router.get(
    "/{task_id}",
    response_model=TaskResponseDTO,
    summary="Obtener una tarea por ID"
)
def get_task(
    task_id: int,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> TaskResponseDTO:
    return use_cases.get_task(task_id)


@router.put(
    "/{task_id}",
    response_model=TaskResponseDTO,
    summary="Actualizar una tarea"
)
def update_task(
    task_id: int,
    dto: TaskUpdateDTO,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> TaskResponseDTO:
    """
    Actualiza la tarea; deshabilitarla o vaciar el cron elimina su trigger.
    """
    return use_cases.update_task(task_id, dto)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar una tarea"
)
def delete_task(
    task_id: int,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> None:
    use_cases.delete_task(task_id)


@router.post(
    "/{task_id}/execute",
    response_model=TaskExecuteResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ejecutar una tarea manualmente"
)
def execute_task(
    task_id: int,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> TaskExecuteResponseDTO:
    """
    Inicia la ejecucion en segundo plano y retorna el id de la ejecucion.
    El progreso se consulta en /logs o /monitor/tasks.
    """
    return use_cases.execute_task(task_id)


@router.post(
    "/{task_id}/copy",
    response_model=TaskResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicar una tarea"
)
def copy_task(
    task_id: int,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> TaskResponseDTO:
    return use_cases.copy_task(task_id)


@router.get(
    "/{task_id}/latest-log",
    response_model=SyncLogDTO,
    summary="Ultima ejecucion de la tarea"
)
def get_latest_log(
    task_id: int,
    use_cases: TaskUseCases = Depends(get_task_use_cases)
) -> SyncLogDTO:
    return use_cases.get_latest_log(task_id)
