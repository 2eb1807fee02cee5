"""
Interfaz del repositorio de ejecuciones de sincronizacion.
Define el contrato que debe cumplir cualquier implementacion.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.domain.entities.sync_run import SyncRun
from app.shared.constants.sync_constants import RunStatus


class ISyncRunRepository(ABC):
    """
    Interfaz del repositorio de ejecuciones (SyncRun).

    Las implementaciones deben ser seguras para llamarse desde los hilos del
    pool de workers: cada llamada es una unidad de trabajo independiente.
    """

    @abstractmethod
    def create(self, run: SyncRun) -> SyncRun:
        """
        Persiste una ejecucion nueva (normalmente en RUNNING).

        Returns:
            SyncRun: Ejecucion con ID asignado
        """
        pass

    @abstractmethod
    def save(self, run: SyncRun) -> SyncRun:
        """Actualiza el registro completo de una ejecucion existente."""
        pass

    @abstractmethod
    def update_processed_count(self, run_id: int, processed_count: int) -> None:
        """
        Actualiza solo el contador de progreso.

        Es una transaccion propia, independiente de la carga del batch, y
        nunca reduce un valor ya reportado.
        """
        pass

    @abstractmethod
    def update_total_count(self, run_id: int, total_count: int) -> None:
        pass

    @abstractmethod
    def get_by_id(self, run_id: int) -> Optional[SyncRun]:
        pass

    @abstractmethod
    def find_latest_for_task(self, task_id: int) -> Optional[SyncRun]:
        pass

    @abstractmethod
    def find_all_by_status(self, status: RunStatus) -> List[SyncRun]:
        pass

    @abstractmethod
    def search(
        self,
        task_id: Optional[int] = None,
        status: Optional[RunStatus] = None,
        keyword: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SyncRun], int]:
        """
        Busca ejecuciones ordenadas de la mas reciente a la mas antigua.

        Returns:
            Tuple[List[SyncRun], int]: Pagina de resultados y total
        """
        pass

    @abstractmethod
    def count_since(self, since: datetime, status: Optional[RunStatus] = None) -> int:
        pass

    @abstractmethod
    def count_by_day(self, since: datetime) -> Dict[str, Dict[str, int]]:
        pass

    @abstractmethod
    def count_by_task(self, since: Optional[datetime] = None, limit: int = 10) -> List[Dict[str, object]]:
        pass

    @abstractmethod
    def delete_for_task(self, task_id: int) -> int:
        pass
