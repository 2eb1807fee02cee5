"""
Implementacion del repositorio de ejecuciones (tabla sync_log) usando SQLAlchemy.

Cada metodo abre su propia sesion corta a partir de la session factory, de modo
que los workers del pipeline pueden reportar progreso en paralelo sin compartir
sesiones entre hilos.
"""
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import sessionmaker

from app.domain.entities.sync_run import SyncRun
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.infrastructure.database.models import SyncLogModel
from app.shared.constants.sync_constants import RunStatus
from app.shared.exceptions.domain import EntityNotFoundException
from app.shared.utils.datetime_utils import DateTimeUtils


class SyncRunRepository(ISyncRunRepository):
    """Repositorio de SyncRun sobre la tabla sync_log."""

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: Factory de sesiones de la base de metadatos
        """
        self._session_factory = session_factory

    def create(self, run: SyncRun) -> SyncRun:
        with self._session_factory.begin() as session:
            db_run = SyncLogModel(
                task_id=run.task_id,
                task_name=run.task_name,
                start_time=run.start_time or DateTimeUtils.now_utc(),
                end_time=run.end_time,
                result=run.status.value,
                message=run.message,
                sync_count=run.sync_count,
                total_count=run.total_count,
                processed_count=run.processed_count,
                duration_ms=run.duration_ms,
                node_details=run.node_details or None,
            )
            session.add(db_run)
            session.flush()
            return self._to_entity(db_run)

    def save(self, run: SyncRun) -> SyncRun:
        if run.id is None:
            return self.create(run)
        with self._session_factory.begin() as session:
            db_run = session.get(SyncLogModel, run.id)
            if db_run is None:
                raise EntityNotFoundException("SyncRun", run.id)
            db_run.task_name = run.task_name
            db_run.end_time = run.end_time
            db_run.result = run.status.value
            db_run.message = run.message
            db_run.sync_count = run.sync_count
            db_run.total_count = run.total_count
            db_run.processed_count = run.processed_count
            db_run.duration_ms = run.duration_ms
            db_run.node_details = run.node_details
            session.flush()
            return self._to_entity(db_run)

    def update_processed_count(self, run_id: int, processed_count: int) -> None:
        # Los workers terminan fuera de orden: solo se avanza el contador
        with self._session_factory.begin() as session:
            session.execute(
                update(SyncLogModel)
                .where(SyncLogModel.id == run_id)
                .where(or_(SyncLogModel.processed_count.is_(None), SyncLogModel.processed_count < processed_count))
                .values(processed_count=processed_count)
            )

    def update_total_count(self, run_id: int, total_count: int) -> None:
        with self._session_factory.begin() as session:
            session.execute(
                update(SyncLogModel).where(SyncLogModel.id == run_id).values(total_count=total_count)
            )

    def get_by_id(self, run_id: int) -> Optional[SyncRun]:
        with self._session_factory() as session:
            db_run = session.get(SyncLogModel, run_id)
            return self._to_entity(db_run) if db_run else None

    def find_latest_for_task(self, task_id: int) -> Optional[SyncRun]:
        with self._session_factory() as session:
            db_run = session.execute(
                select(SyncLogModel)
                .where(SyncLogModel.task_id == task_id)
                .order_by(SyncLogModel.start_time.desc(), SyncLogModel.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            return self._to_entity(db_run) if db_run else None

    def find_all_by_status(self, status: RunStatus) -> List[SyncRun]:
        with self._session_factory() as session:
            rows = session.execute(
                select(SyncLogModel).where(SyncLogModel.result == status.value).order_by(SyncLogModel.id)
            ).scalars().all()
            return [self._to_entity(r) for r in rows]

    def search(
        self,
        task_id: Optional[int] = None,
        status: Optional[RunStatus] = None,
        keyword: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SyncRun], int]:
        filters = []
        if task_id is not None:
            filters.append(SyncLogModel.task_id == task_id)
        if status is not None:
            filters.append(SyncLogModel.result == status.value)
        if keyword:
            pattern = f"%{keyword}%"
            filters.append(or_(SyncLogModel.task_name.ilike(pattern), SyncLogModel.message.ilike(pattern)))

        with self._session_factory() as session:
            total = session.execute(
                select(func.count()).select_from(SyncLogModel).where(*filters)
            ).scalar_one()
            rows = session.execute(
                select(SyncLogModel)
                .where(*filters)
                .order_by(SyncLogModel.start_time.desc(), SyncLogModel.id.desc())
                .offset(skip)
                .limit(limit)
            ).scalars().all()
            return [self._to_entity(r) for r in rows], total

    def list_for_task(self, task_id: int, skip: int = 0, limit: int = 20) -> Tuple[List[SyncRun], int]:
        return self.search(task_id=task_id, skip=skip, limit=limit)

    def count_since(self, since: datetime, status: Optional[RunStatus] = None) -> int:
        query = select(func.count()).select_from(SyncLogModel).where(SyncLogModel.start_time >= since)
        if status is not None:
            query = query.where(SyncLogModel.result == status.value)
        with self._session_factory() as session:
            return session.execute(query).scalar_one()

    def count_by_day(self, since: datetime) -> Dict[str, Dict[str, int]]:
        """
        Cuenta ejecuciones por dia (YYYY-MM-DD) y resultado desde `since`.

        Se agrega en Python para no depender de funciones de fecha del dialecto.
        """
        with self._session_factory() as session:
            rows = session.execute(
                select(SyncLogModel.start_time, SyncLogModel.result).where(SyncLogModel.start_time >= since)
            ).all()

        counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for start_time, result in rows:
            day = DateTimeUtils.ensure_utc(start_time).date().isoformat()
            counts[day][result] += 1
            counts[day]["total"] += 1
        return {day: dict(values) for day, values in counts.items()}

    def count_by_task(self, since: Optional[datetime] = None, limit: int = 10) -> List[Dict[str, object]]:
        total = func.count(SyncLogModel.id).label("total")
        query = select(SyncLogModel.task_id, func.max(SyncLogModel.task_name), total).group_by(SyncLogModel.task_id)
        if since is not None:
            query = query.where(SyncLogModel.start_time >= since)
        query = query.order_by(total.desc()).limit(limit)
        with self._session_factory() as session:
            rows = session.execute(query).all()
        return [{"taskId": task_id, "taskName": name, "count": count} for task_id, name, count in rows]

    def delete_for_task(self, task_id: int) -> int:
        with self._session_factory.begin() as session:
            result = session.execute(delete(SyncLogModel).where(SyncLogModel.task_id == task_id))
            deleted = result.rowcount or 0
        if deleted:
            logger.info(f"Eliminados {deleted} logs de la tarea {task_id}")
        return deleted

    @staticmethod
    def _to_entity(db_run: SyncLogModel) -> SyncRun:
        """Convierte un modelo de base de datos a entidad de dominio."""
        return SyncRun(
            id=db_run.id,
            task_id=db_run.task_id,
            task_name=db_run.task_name,
            status=RunStatus(db_run.result),
            start_time=db_run.start_time,
            end_time=db_run.end_time,
            total_count=db_run.total_count,
            processed_count=db_run.processed_count or 0,
            sync_count=db_run.sync_count,
            duration_ms=db_run.duration_ms,
            message=db_run.message,
            node_details=list(db_run.node_details or []),
        )
