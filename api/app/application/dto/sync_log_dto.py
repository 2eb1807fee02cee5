"""
DTOs del registro de ejecuciones (sync_log).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.application.dto.base import CamelModel
from app.shared.constants.sync_constants import RunStatus


class SyncLogDTO(CamelModel):
    """Una ejecucion con su traza por nodo."""

    id: int
    task_id: int
    task_name: Optional[str] = None
    status: RunStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_count: Optional[int] = None
    processed_count: int = 0
    sync_count: Optional[int] = None
    duration_ms: Optional[int] = None
    message: Optional[str] = None
    node_details: List[Dict[str, Any]] = []


class SyncLogPageDTO(CamelModel):
    """Pagina de ejecuciones."""

    items: List[SyncLogDTO]
    total: int
    skip: int
    limit: int
