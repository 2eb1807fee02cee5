"""
Casos de uso del historial de ejecuciones.
"""
from typing import Optional

from app.application.dto.sync_log_dto import SyncLogDTO, SyncLogPageDTO
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.shared.constants.sync_constants import RunStatus
from app.shared.exceptions.domain import EntityNotFoundException


class SyncLogUseCases:
    """Consulta paginada del registro de ejecuciones."""

    def __init__(self, run_repository: ISyncRunRepository):
        self.run_repository = run_repository

    def search_logs(
        self,
        task_id: Optional[int] = None,
        status: Optional[RunStatus] = None,
        keyword: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> SyncLogPageDTO:
        runs, total = self.run_repository.search(task_id, status, keyword, skip, limit)
        return SyncLogPageDTO(
            items=[SyncLogDTO.model_validate(r) for r in runs],
            total=total,
            skip=skip,
            limit=limit,
        )

    def get_log(self, run_id: int) -> SyncLogDTO:
        run = self.run_repository.get_by_id(run_id)
        if run is None:
            raise EntityNotFoundException("SyncLog", run_id)
        return SyncLogDTO.model_validate(run)
