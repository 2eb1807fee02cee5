"""
Interfaz del repositorio de endpoints definidos como flujo.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from app.domain.entities.api_definition import ApiDefinition


class IApiDefinitionRepository(ABC):
    """Operaciones de persistencia para ApiDefinition."""

    @abstractmethod
    def create(self, definition: ApiDefinition) -> ApiDefinition:
        pass

    @abstractmethod
    def get_by_id(self, api_id: str) -> Optional[ApiDefinition]:
        pass

    @abstractmethod
    def get_all(self) -> List[ApiDefinition]:
        pass

    @abstractmethod
    def find_by_path_and_method(self, path: str, method: str) -> Optional[ApiDefinition]:
        """Busca la definicion para un path y metodo HTTP (metodo en mayusculas)."""
        pass

    @abstractmethod
    def update(self, definition: ApiDefinition) -> ApiDefinition:
        pass

    @abstractmethod
    def delete(self, api_id: str) -> bool:
        pass
