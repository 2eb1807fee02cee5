"""
DTOs de endpoints definidos como flujo.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from app.application.dto.base import CamelModel
from app.shared.constants.sync_constants import ApiStatus, ApiType


class ApiDefinitionCreateDTO(CamelModel):
    """DTO para crear un endpoint."""

    name: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., min_length=1, description="Path publicado bajo /api/exec")
    method: str = Field("GET", description="Metodo HTTP")
    description: Optional[str] = None
    api_type: ApiType = ApiType.PRIVATE
    status: ApiStatus = ApiStatus.DRAFT
    version: str = "v1"
    content: Optional[str] = Field(None, description="JSON del flujo")
    response_example: Optional[str] = None


class ApiDefinitionUpdateDTO(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    path: Optional[str] = None
    method: Optional[str] = None
    description: Optional[str] = None
    api_type: Optional[ApiType] = None
    status: Optional[ApiStatus] = None
    version: Optional[str] = None
    content: Optional[str] = None
    response_example: Optional[str] = None


class ApiDefinitionResponseDTO(CamelModel):
    id: str
    name: str
    path: str
    method: str
    description: Optional[str] = None
    api_type: ApiType
    status: ApiStatus
    version: str
    content: Optional[str] = None
    response_example: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ApiDebugRequestDTO(CamelModel):
    """Parametros de una ejecucion de depuracion."""

    params: Dict[str, Any] = Field(default_factory=dict)
