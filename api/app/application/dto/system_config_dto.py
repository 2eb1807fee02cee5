"""
DTOs de configuracion del sistema (clave -> valor).
"""
from typing import Optional

from app.application.dto.base import CamelModel


class SystemConfigUpdateDTO(CamelModel):
    value: str
    name: Optional[str] = None
    description: Optional[str] = None
