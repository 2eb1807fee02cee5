"""
Entidad de dominio: FlowGraph (grafo de nodos de un flujo).

Representacion en memoria de los nodos y aristas que produce el editor visual.
Solo expone consultas estructurales; no tiene comportamiento de ejecucion.

Reglas:
- Los ids de nodo son unicos (si se repite un id, gana la primera aparicion).
- Las aristas cuyos extremos no existen se descartan en silencio.
- La lista de aristas se acepta como `edges` o `connections` (flujos antiguos).
- No se valida aciclicidad: un ciclo simplemente deja nodos con grado de
  entrada mayor que cero.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class FlowNode:
    """Nodo tipado y configurado dentro de un flujo."""

    id: str
    type: str = ""
    label: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def functional_type(self) -> str:
        """
        Tipo funcional del nodo, en mayusculas.

        Los nodos del editor tienen un `type` de presentacion (normalmente
        "default") y el tipo funcional dentro de `data.type`.
        """
        data_type = self.data.get("type") if isinstance(self.data, dict) else None
        if data_type:
            return str(data_type).upper()
        return (self.type or "").upper()

    @property
    def config(self) -> Dict[str, Any]:
        """Configuracion del nodo: `data.config` si existe, si no `data`."""
        cfg = self.data.get("config") if isinstance(self.data, dict) else None
        if isinstance(cfg, dict):
            return cfg
        return self.data if isinstance(self.data, dict) else {}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FlowNode":
        data = raw.get("data")
        return cls(
            id=str(raw.get("id", "")),
            type=str(raw.get("type") or ""),
            label=str(raw.get("label") or ""),
            data=data if isinstance(data, dict) else {},
        )


@dataclass(frozen=True)
class FlowEdge:
    """Arista dirigida entre dos nodos."""

    source_id: str
    target_id: str


class FlowGraph:
    """
    Grafo inmutable de un flujo.

    El grado de entrada y la adyacencia se calculan una sola vez al construir.
    """

    def __init__(self, nodes: List[FlowNode], edges: List[FlowEdge]) -> None:
        self._nodes: List[FlowNode] = []
        self._by_id: Dict[str, FlowNode] = {}
        for node in nodes:
            if node.id in self._by_id:
                continue
            self._nodes.append(node)
            self._by_id[node.id] = node

        self._edges: List[FlowEdge] = []
        self._successors: Dict[str, List[str]] = {n.id: [] for n in self._nodes}
        self._predecessors: Dict[str, List[str]] = {n.id: [] for n in self._nodes}
        self._in_degree: Dict[str, int] = {n.id: 0 for n in self._nodes}

        for edge in edges:
            if edge.source_id not in self._by_id or edge.target_id not in self._by_id:
                continue
            self._edges.append(edge)
            self._successors[edge.source_id].append(edge.target_id)
            self._predecessors[edge.target_id].append(edge.source_id)
            self._in_degree[edge.target_id] += 1

    # ------------------------------------------------------------------
    # Construccion
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "FlowGraph":
        """Construye el grafo a partir del JSON del editor."""
        raw = raw or {}
        nodes = [FlowNode.from_dict(n) for n in raw.get("nodes") or [] if isinstance(n, dict)]

        raw_edges = raw.get("edges")
        if raw_edges is None:
            raw_edges = raw.get("connections") or []

        edges = [
            FlowEdge(source_id=str(e.get("source", "")), target_id=str(e.get("target", "")))
            for e in raw_edges
            if isinstance(e, dict)
        ]
        return cls(nodes, edges)

    @classmethod
    def from_json(cls, content: Union[str, bytes, Dict[str, Any], None]) -> "FlowGraph":
        """Acepta el contenido serializado (str) o ya decodificado (dict)."""
        if content is None or content == "":
            return cls([], [])
        if isinstance(content, (str, bytes)):
            content = json.loads(content)
        return cls.from_dict(content)

    # ------------------------------------------------------------------
    # Consultas estructurales
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Tuple[FlowNode, ...]:
        return tuple(self._nodes)

    @property
    def edges(self) -> Tuple[FlowEdge, ...]:
        return tuple(self._edges)

    def node_by_id(self, node_id: str) -> Optional[FlowNode]:
        return self._by_id.get(node_id)

    def successors(self, node_id: str) -> List[str]:
        return list(self._successors.get(node_id, []))

    def predecessors(self, node_id: str) -> List[str]:
        return list(self._predecessors.get(node_id, []))

    def in_degree(self, node_id: str) -> int:
        return self._in_degree.get(node_id, 0)

    def in_degrees(self) -> Dict[str, int]:
        """Copia mutable de los grados de entrada (para recorridos de Kahn)."""
        return dict(self._in_degree)

    def __len__(self) -> int:
        return len(self._nodes)
