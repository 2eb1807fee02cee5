"""
Gestor del ciclo de vida de las tareas de sincronizacion.

Responsabilidades:
- Recuperacion al arrancar: las ejecuciones que quedaron en RUNNING pasan a
  FAILURE (no puede haber una ejecucion viva tras un reinicio)
- Mantener un trigger cron por tarea habilitada (job `task_<id>`)
- Exclusividad por tarea: si la tarea ya corre, el disparo se omite y se
  registra en log (no se encola)
- Ejecucion manual asincrona: crea la ejecucion y retorna su id de inmediato

El BackgroundScheduler de APScheduler es propiedad de esta clase; se inicia y
detiene con los eventos de la aplicacion.
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Set

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from loguru import logger

from app.core.config import settings
from app.domain.entities.sync_run import SyncRun
from app.domain.entities.sync_task import SyncTaskDefinition
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.domain.repositories.sync_task_repository import ISyncTaskRepository
from app.infrastructure.scheduling.cron import build_cron_trigger
from app.infrastructure.sync.pipeline import SyncPipeline
from app.shared.constants.sync_constants import (
    CRASH_RECOVERY_MESSAGE,
    RunStatus,
    SCHEDULER_JOB_PREFIX,
)
from app.shared.exceptions.base import AppException
from app.shared.exceptions.domain import EntityNotFoundException, FolderNotExecutableException
from app.shared.exceptions.sync import TaskAlreadyRunningError


def job_id_for(task_id: int) -> str:
    return f"{SCHEDULER_JOB_PREFIX}{task_id}"


class LifecycleManager:
    """
    Programa, ejecuta y recupera las tareas de sincronizacion.

    Args:
        task_repository: Definiciones de tareas
        run_repository: Registro de ejecuciones
        pipeline: Ejecutor del pipeline (dueño del pool de workers)
        scheduler: Scheduler a usar (default: BackgroundScheduler nuevo)
    """

    def __init__(
        self,
        task_repository: ISyncTaskRepository,
        run_repository: ISyncRunRepository,
        pipeline: SyncPipeline,
        scheduler: Optional[BackgroundScheduler] = None,
        timezone: Optional[str] = None,
    ) -> None:
        self.tasks = task_repository
        self.runs = run_repository
        self.pipeline = pipeline
        self._timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.scheduler = scheduler or BackgroundScheduler(timezone=self._timezone)

        self._running: Set[int] = set()
        self._running_lock = threading.Lock()
        self._manual_threads: Dict[int, threading.Thread] = {}

    # ------------------------------------------------------------------
    # Arranque y cierre
    # ------------------------------------------------------------------

    def start(self, enable_scheduler: bool = True) -> None:
        """
        Recupera ejecuciones huerfanas y luego instala los triggers.
        La recuperacion ocurre antes de que pueda empezar cualquier ejecucion.
        """
        recovered = self.recover_running_runs()
        if recovered:
            logger.warning(f"{recovered} ejecuciones interrumpidas marcadas como FAILURE")

        if not enable_scheduler:
            logger.info("Scheduler deshabilitado por configuracion: no se instalan triggers")
            return

        scheduled = self.refresh_all()
        if not self.scheduler.running:
            self.scheduler.start()
        logger.success(f"Scheduler iniciado con {scheduled} tareas programadas")

    def shutdown(self, wait: bool = False, join_timeout: float = 5.0) -> None:
        """Detiene el scheduler, espera las ejecuciones manuales y cierra el pool."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler detenido")
        with self._running_lock:
            threads = list(self._manual_threads.values())
        for thread in threads:
            thread.join(timeout=join_timeout)
        self.pipeline.shutdown(wait=True)

    def recover_running_runs(self) -> int:
        """Marca como FAILURE todas las ejecuciones persistidas en RUNNING."""
        recovered = 0
        for run in self.runs.find_all_by_status(RunStatus.RUNNING):
            run.mark_interrupted(CRASH_RECOVERY_MESSAGE)
            self.runs.save(run)
            logger.warning(f"Ejecucion {run.id} de la tarea {run.task_id} marcada como interrumpida")
            recovered += 1
        return recovered

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def refresh_all(self) -> int:
        """Recalcula el trigger de todas las tareas. Retorna cuantas quedaron programadas."""
        scheduled = 0
        for task in self.tasks.get_all():
            if self.reschedule_task(task):
                scheduled += 1
        return scheduled

    def reschedule_task(self, task: SyncTaskDefinition) -> bool:
        """
        Elimina el trigger actual de la tarea y, si esta habilitada y tiene
        cron, instala uno nuevo. Un cron invalido se registra y no se programa.
        """
        self.unschedule_task(task.id)
        if not task.is_schedulable():
            return False

        try:
            trigger = build_cron_trigger(task.cron, self._timezone)
        except AppException as e:
            logger.error(f"No se pudo programar la tarea {task.id} ({task.name}): {e.message}")
            return False

        self.scheduler.add_job(
            self._on_trigger,
            trigger=trigger,
            args=[task.id],
            id=job_id_for(task.id),
            name=task.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Tarea {task.id} ({task.name}) programada con cron '{task.cron}'")
        return True

    def unschedule_task(self, task_id: Optional[int]) -> None:
        if task_id is None:
            return
        try:
            self.scheduler.remove_job(job_id_for(task_id))
            logger.info(f"Trigger de la tarea {task_id} eliminado")
        except JobLookupError:
            pass

    def has_trigger(self, task_id: int) -> bool:
        return self.scheduler.get_job(job_id_for(task_id)) is not None

    def next_fire_time(self, task_id: int) -> Optional[datetime]:
        job = self.scheduler.get_job(job_id_for(task_id))
        if job is None:
            return None
        # Los jobs pendientes (scheduler sin iniciar) aun no tienen proxima fecha
        return getattr(job, "next_run_time", None)

    # ------------------------------------------------------------------
    # Ejecucion
    # ------------------------------------------------------------------

    def is_running(self, task_id: int) -> bool:
        with self._running_lock:
            return task_id in self._running

    def running_task_ids(self) -> List[int]:
        with self._running_lock:
            return sorted(self._running)

    def _claim(self, task_id: int) -> bool:
        with self._running_lock:
            if task_id in self._running:
                return False
            self._running.add(task_id)
            return True

    def _release(self, task_id: int) -> None:
        with self._running_lock:
            self._running.discard(task_id)

    def _on_trigger(self, task_id: int) -> Optional[int]:
        """Callback del scheduler: ejecuta la tarea en el hilo del scheduler."""
        if not self._claim(task_id):
            logger.warning(f"Tarea {task_id} ya en ejecucion: se omite este disparo")
            return None
        try:
            task = self.tasks.get_by_id(task_id)
            if task is None or task.is_folder:
                logger.warning(f"Tarea {task_id} inexistente o carpeta: se omite el disparo")
                self.unschedule_task(task_id)
                return None
            run = self.pipeline.execute(task)
            return run.id
        except Exception as e:
            logger.exception(f"Error ejecutando la tarea programada {task_id}: {e}")
            return None
        finally:
            self._release(task_id)

    def run_sync_task(self, task_id: int) -> int:
        """
        Inicia una ejecucion manual y retorna el id de la ejecucion.

        La ejecucion se crea (RUNNING) antes de retornar; el pipeline corre en
        un hilo aparte.

        Raises:
            EntityNotFoundException: la tarea no existe
            FolderNotExecutableException: la tarea es una carpeta
            TaskAlreadyRunningError: la tarea ya se esta ejecutando
        """
        task = self.tasks.get_by_id(task_id)
        if task is None:
            raise EntityNotFoundException("SyncTask", task_id)
        if task.is_folder:
            raise FolderNotExecutableException(task_id)
        if not self._claim(task_id):
            raise TaskAlreadyRunningError(task_id)

        try:
            run = self.pipeline.start_run(task)
        except Exception:
            self._release(task_id)
            raise

        thread = threading.Thread(
            target=self._execute_claimed,
            args=(task, run),
            name=f"manual-sync-{task_id}",
            daemon=True,
        )
        with self._running_lock:
            self._manual_threads[task_id] = thread
        thread.start()
        logger.info(f"Ejecucion manual {run.id} de la tarea {task_id} iniciada")
        return run.id

    def wait_for_task(self, task_id: int, timeout: Optional[float] = None) -> None:
        """Espera la ejecucion manual en curso de la tarea (si la hay)."""
        with self._running_lock:
            thread = self._manual_threads.get(task_id)
        if thread is not None:
            thread.join(timeout=timeout)

    def _execute_claimed(self, task: SyncTaskDefinition, run: SyncRun) -> None:
        try:
            self.pipeline.execute(task, run)
        except Exception as e:
            logger.exception(f"Error en la ejecucion manual {run.id}: {e}")
        finally:
            with self._running_lock:
                if self._manual_threads.get(task.id) is threading.current_thread():
                    del self._manual_threads[task.id]
            self._release(task.id)
