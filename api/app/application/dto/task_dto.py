"""
DTOs de tareas de sincronizacion (arbol de tareas y carpetas).
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.application.dto.base import CamelModel
from app.shared.constants.sync_constants import TaskStatus, TaskType


class TaskCreateDTO(CamelModel):
    """DTO para crear una tarea o carpeta."""

    name: str = Field(..., min_length=1, max_length=255, description="Nombre de la tarea")
    type: TaskType = Field(TaskType.TASK, description="TASK o FOLDER")
    parent_id: Optional[int] = Field(None, description="Carpeta contenedora")
    description: Optional[str] = None
    cron: Optional[str] = Field(None, description="Expresion cron (5 campos o Quartz)")
    content: Optional[str] = Field(None, description="JSON del flujo del editor")
    status: TaskStatus = TaskStatus.DISABLED


class TaskUpdateDTO(CamelModel):
    """DTO para actualizar una tarea; solo se aplican los campos enviados."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_id: Optional[int] = None
    description: Optional[str] = None
    cron: Optional[str] = None
    content: Optional[str] = None
    status: Optional[TaskStatus] = None


class TaskResponseDTO(CamelModel):
    """DTO de respuesta para una tarea."""

    id: int
    name: str
    type: TaskType
    parent_id: Optional[int] = None
    description: Optional[str] = None
    cron: Optional[str] = None
    content: Optional[str] = None
    status: TaskStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TaskExecuteResponseDTO(CamelModel):
    """Acuse de una ejecucion manual."""

    task_id: int
    run_id: int
    message: str = "Task started"


class CronPreviewDTO(CamelModel):
    cron: str
    next_executions: List[datetime]
