"""
Casos de uso de configuracion del sistema.
"""
from typing import Any, Dict

from app.application.dto.system_config_dto import SystemConfigUpdateDTO
from app.infrastructure.repositories.system_config_repository import SystemConfigRepository


class SystemConfigUseCases:
    """Lectura y escritura de claves de configuracion."""

    def __init__(self, config_repository: SystemConfigRepository):
        self.config_repository = config_repository

    def get_all(self) -> Dict[str, Any]:
        return self.config_repository.get_all()

    def get_value(self, key: str, default: Any = None) -> Any:
        return self.config_repository.get_value(key, default)

    def set_value(self, key: str, dto: SystemConfigUpdateDTO) -> Dict[str, Any]:
        self.config_repository.set_value(key, dto.value, dto.name, dto.description)
        return {"key": key, "value": dto.value}
