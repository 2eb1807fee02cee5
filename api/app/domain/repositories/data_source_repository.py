"""
Interfaz del repositorio de conexiones registradas.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from app.domain.entities.data_source import DataSourceDescriptor


class IDataSourceRepository(ABC):
    """Operaciones de persistencia para DataSourceDescriptor."""

    @abstractmethod
    def create(self, descriptor: DataSourceDescriptor) -> DataSourceDescriptor:
        pass

    @abstractmethod
    def get_by_id(self, data_source_id: int) -> Optional[DataSourceDescriptor]:
        pass

    @abstractmethod
    def get_all(self) -> List[DataSourceDescriptor]:
        pass

    @abstractmethod
    def update(self, descriptor: DataSourceDescriptor) -> DataSourceDescriptor:
        pass

    @abstractmethod
    def delete(self, data_source_id: int) -> bool:
        pass
