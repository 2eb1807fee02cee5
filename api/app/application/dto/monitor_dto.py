"""
DTOs del modelo de lectura de monitoreo.
"""
from datetime import datetime
from typing import Dict, List, Optional

from app.application.dto.base import CamelModel
from app.shared.constants.sync_constants import RunStatus, TaskStatus


class TaskProgressDTO(CamelModel):
    """
    Estado de una tarea para el panel.
    Los contadores solo se informan mientras la ultima ejecucion esta en RUNNING.
    """

    id: int
    name: str
    status: TaskStatus
    cron: Optional[str] = None
    next_fire_time: Optional[datetime] = None
    last_result: Optional[RunStatus] = None
    last_start_time: Optional[datetime] = None
    total_count: Optional[int] = None
    processed_count: Optional[int] = None


class DailyTrendDTO(CamelModel):
    date: str
    total: int = 0
    success: int = 0
    failure: int = 0


class TaskRankingDTO(CamelModel):
    task_id: int
    task_name: Optional[str] = None
    count: int


class MonitorStatsDTO(CamelModel):
    """Resumen general del motor."""

    total_tasks: int
    today_total: int
    today_success: int
    today_failure: int
    today_running: int
    trend: List[DailyTrendDTO]
    ranking: List[TaskRankingDTO]
    worker_pool: Dict[str, object] = {}
