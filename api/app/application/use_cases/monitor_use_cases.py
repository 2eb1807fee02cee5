"""
Casos de uso del panel de monitoreo.
"""
from datetime import datetime, time, timedelta
from typing import List

from app.application.dto.monitor_dto import (
    DailyTrendDTO,
    MonitorStatsDTO,
    TaskProgressDTO,
    TaskRankingDTO,
)
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.domain.repositories.sync_task_repository import ISyncTaskRepository
from app.infrastructure.scheduling.lifecycle_manager import LifecycleManager
from app.shared.constants.sync_constants import RunStatus, TaskType
from app.shared.utils.datetime_utils import DateTimeUtils


TREND_DAYS = 7
RANKING_SIZE = 10


class MonitorUseCases:
    """
    Modelo de lectura para dashboards: resumen diario, tendencia de 7 dias,
    ranking de tareas y progreso de cada tarea.
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

    def get_stats(self) -> MonitorStatsDTO:
        now = DateTimeUtils.now_utc()
        today_start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        trend_start = today_start - timedelta(days=TREND_DAYS - 1)

        by_day = self.run_repository.count_by_day(trend_start)
        trend: List[DailyTrendDTO] = []
        for offset in range(TREND_DAYS - 1, -1, -1):
            day = (now.date() - timedelta(days=offset)).isoformat()
            counts = by_day.get(day, {})
            trend.append(DailyTrendDTO(
                date=day,
                total=counts.get("total", 0),
                success=counts.get(RunStatus.SUCCESS.value, 0),
                failure=counts.get(RunStatus.FAILURE.value, 0),
            ))

        ranking = [
            TaskRankingDTO(task_id=r["taskId"], task_name=r["taskName"], count=r["count"])
            for r in self.run_repository.count_by_task(trend_start, RANKING_SIZE)
        ]

        return MonitorStatsDTO(
            total_tasks=len(self.task_repository.find_all_by_type(TaskType.TASK)),
            today_total=self.run_repository.count_since(today_start),
            today_success=self.run_repository.count_since(today_start, RunStatus.SUCCESS),
            today_failure=self.run_repository.count_since(today_start, RunStatus.FAILURE),
            today_running=self.run_repository.count_since(today_start, RunStatus.RUNNING),
            trend=trend,
            ranking=ranking,
            worker_pool=self.lifecycle.pipeline.executor.get_stats(),
        )

    def get_task_progress(self) -> List[TaskProgressDTO]:
        """Estado de cada tarea; los contadores solo mientras corre."""
        result: List[TaskProgressDTO] = []
        for task in self.task_repository.find_all_by_type(TaskType.TASK):
            progress = TaskProgressDTO(
                id=task.id,
                name=task.name,
                status=task.status,
                cron=task.cron,
                next_fire_time=self.lifecycle.next_fire_time(task.id),
            )
            latest = self.run_repository.find_latest_for_task(task.id)
            if latest is not None:
                progress.last_result = latest.status
                progress.last_start_time = latest.start_time
                if latest.is_running:
                    progress.total_count = latest.total_count
                    progress.processed_count = latest.processed_count
            result.append(progress)
        return result
