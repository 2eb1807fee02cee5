"""
Entidad de dominio: SyncRun (ejecucion de una tarea de sincronizacion).

Ciclo de vida:
- Se crea en RUNNING y se persiste de inmediato (visible en monitoreo).
- El contador de filas procesadas solo crece mientras la ejecucion avanza.
- Se finaliza una unica vez, como SUCCESS o FAILURE.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.shared.constants.sync_constants import RunStatus
from app.shared.utils.datetime_utils import DateTimeUtils


@dataclass
class NodeTrace:
    """Entrada de traza por nodo (INPUT, MAPPING, OUTPUT o ERROR)."""

    node_type: str
    node_id: Optional[str] = None
    node_name: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    row_count: Optional[int] = None
    duration_ms: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def finish(self, row_count: int, end_time: Optional[datetime] = None) -> None:
        self.end_time = end_time or DateTimeUtils.now_utc()
        self.row_count = row_count
        if self.start_time is not None:
            self.duration_ms = DateTimeUtils.elapsed_ms(self.start_time, self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"nodeType": self.node_type}
        if self.node_id is not None:
            data["nodeId"] = self.node_id
        if self.node_name is not None:
            data["nodeName"] = self.node_name
        if self.start_time is not None:
            data["startTime"] = DateTimeUtils.to_iso_string(self.start_time)
        if self.end_time is not None:
            data["endTime"] = DateTimeUtils.to_iso_string(self.end_time)
        if self.row_count is not None:
            data["rowCount"] = self.row_count
        if self.duration_ms is not None:
            data["durationMs"] = self.duration_ms
        data.update(self.details)
        return data


@dataclass
class SyncRun:
    """
    Registro de una ejecucion.

    `sync_count` y `processed_count` coinciden al finalizar; el primero es el
    nombre historico que muestran los listados.
    """

    task_id: int
    id: Optional[int] = None
    task_name: Optional[str] = None
    status: RunStatus = RunStatus.RUNNING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_count: Optional[int] = None
    processed_count: int = 0
    sync_count: Optional[int] = None
    duration_ms: Optional[int] = None
    message: Optional[str] = None
    node_details: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def start(cls, task_id: int, task_name: Optional[str] = None) -> "SyncRun":
        return cls(
            task_id=task_id,
            task_name=task_name,
            status=RunStatus.RUNNING,
            start_time=DateTimeUtils.now_utc(),
            processed_count=0,
        )

    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING

    @property
    def is_finalized(self) -> bool:
        return self.status != RunStatus.RUNNING

    def succeed(self, processed: int, traces: List[NodeTrace]) -> None:
        self._finalize(RunStatus.SUCCESS, f"Successfully synchronized {processed} records.", processed, traces)

    def fail(self, message: str, processed: int, traces: List[NodeTrace]) -> None:
        self._finalize(RunStatus.FAILURE, message, processed, traces)

    def mark_interrupted(self, message: str) -> None:
        """Usado por la recuperacion al arrancar: conserva el progreso reportado."""
        self._finalize(RunStatus.FAILURE, message, self.processed_count or 0, None)

    def _finalize(
        self,
        status: RunStatus,
        message: str,
        processed: int,
        traces: Optional[List[NodeTrace]],
    ) -> None:
        if self.is_finalized:
            raise ValueError(f"La ejecucion {self.id} ya fue finalizada ({self.status.value})")
        self.status = status
        self.message = message
        self.end_time = DateTimeUtils.now_utc()
        self.processed_count = processed
        self.sync_count = processed
        if self.start_time is not None:
            self.duration_ms = DateTimeUtils.elapsed_ms(self.start_time, self.end_time)
        if traces is not None:
            self.node_details = [t.to_dict() for t in traces]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "taskName": self.task_name,
            "result": self.status.value,
            "startTime": DateTimeUtils.to_iso_string(self.start_time),
            "endTime": DateTimeUtils.to_iso_string(self.end_time),
            "totalCount": self.total_count,
            "processedCount": self.processed_count,
            "syncCount": self.sync_count,
            "durationMs": self.duration_ms,
            "message": self.message,
            "nodeDetails": self.node_details,
        }
