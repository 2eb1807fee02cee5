"""
Endpoints del historial de ejecuciones.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies.use_case_deps import get_sync_log_use_cases
from app.application.dto.sync_log_dto import SyncLogDTO, SyncLogPageDTO
from app.application.use_cases.sync_log_use_cases import SyncLogUseCases
from app.shared.constants.sync_constants import RunStatus


router = APIRouter(prefix="/logs", tags=["Logs"])


@router.get(
    "/",
    response_model=SyncLogPageDTO,
    summary="Buscar ejecuciones"
)
def search_logs(
    task_id: Optional[int] = Query(None, alias="taskId"),
    status: Optional[RunStatus] = None,
    keyword: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=200),
    use_cases: SyncLogUseCases = Depends(get_sync_log_use_cases)
) -> SyncLogPageDTO:
    """
    Lista ejecuciones (mas recientes primero) filtrando por tarea, estado o
    texto en nombre/mensaje.
    """
    return use_cases.search_logs(task_id, status, keyword, skip, limit)


@router.get(
    "/{run_id}",
    response_model=SyncLogDTO,
    summary="Obtener una ejecucion"
)
def get_log(
    run_id: int,
    use_cases: SyncLogUseCases = Depends(get_sync_log_use_cases)
) -> SyncLogDTO:
    return use_cases.get_log(run_id)
