"""
Entidad de dominio: ApiDefinition (endpoint invocable definido como flujo).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from app.domain.entities.flow_graph import FlowGraph
from app.shared.constants.sync_constants import ApiStatus, ApiType


@dataclass
class ApiDefinition:
    """
    Endpoint publicado bajo `/api/exec<path>`.
    Solo los endpoints ONLINE se pueden invocar; los PRIVATE exigen bearer.
    """

    id: Optional[str] = None
    name: str = ""
    path: str = ""
    method: str = "GET"
    description: Optional[str] = None
    api_type: ApiType = ApiType.PRIVATE
    status: ApiStatus = ApiStatus.DRAFT
    version: str = "v1"
    content: Optional[str] = None
    response_example: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> None:
        """Metodo en mayusculas y path con `/` inicial."""
        self.method = (self.method or "GET").upper()
        if self.path and not self.path.startswith("/"):
            self.path = "/" + self.path

    @property
    def is_online(self) -> bool:
        return self.status == ApiStatus.ONLINE

    @property
    def is_private(self) -> bool:
        return self.api_type == ApiType.PRIVATE

    def graph(self) -> FlowGraph:
        return FlowGraph.from_json(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "method": self.method,
            "description": self.description,
            "apiType": self.api_type.value,
            "status": self.status.value,
            "version": self.version,
            "content": self.content,
            "responseExample": self.response_example,
        }
