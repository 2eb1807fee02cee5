"""
DTOs de fuentes de datos (directorio de conexiones).
"""
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.application.dto.base import CamelModel


class DataSourceCreateDTO(CamelModel):
    """DTO para registrar una conexion."""

    name: str = Field(..., min_length=1, max_length=255)
    kind: str = Field("POSTGRESQL", description="Tipo de fuente")
    host: str
    port: int = 5432
    database: str
    username: Optional[str] = None
    password: Optional[str] = None


class DataSourceUpdateDTO(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    kind: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class DataSourceResponseDTO(CamelModel):
    """La contraseña nunca se devuelve."""

    id: int
    name: str
    kind: str
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None


class DataSourceTestResultDTO(CamelModel):
    success: bool
    message: str


class SqlRequestDTO(CamelModel):
    """SQL a previsualizar o inspeccionar sobre una fuente."""

    sql: str = Field(..., min_length=1)


class SqlPreviewDTO(CamelModel):
    rows: List[Dict[str, Any]]
