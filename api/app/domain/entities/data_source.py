"""
Entidad de dominio: DataSourceDescriptor (conexion relacional registrada).
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DataSourceDescriptor:
    """Datos necesarios para abrir una conexion de origen o destino."""

    id: Optional[int]
    name: str
    kind: str
    host: str
    port: int
    database: str
    username: str
    password: str

    @property
    def fingerprint(self) -> str:
        """Identifica los parametros de conexion (cambia si se edita la fuente)."""
        return f"{self.kind.upper()}|{self.host}|{self.port}|{self.database}|{self.username}|{self.password}"

