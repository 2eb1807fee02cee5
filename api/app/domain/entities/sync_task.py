"""
Entidad de dominio: SyncTaskDefinition (tarea de sincronizacion).

Una tarea guarda un flujo con exactamente un nodo de entrada, cero o mas nodos
de mapeo y exactamente un nodo de salida. `SyncFlowSpec.from_graph` traduce ese
flujo a una configuracion tipada que consume el pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.domain.entities.flow_graph import FlowGraph, FlowNode
from app.shared.constants.sync_constants import (
    ConflictStrategy,
    DEFAULT_BATCH_SIZE,
    DEFAULT_FIELD_TYPE,
    MAPPING_NODE_LABEL,
    SyncNodeKind,
    TaskStatus,
    TaskType,
    WriteMode,
)
from app.shared.exceptions.sync import SyncValidationError


def sync_node_kind(node: FlowNode) -> Optional[SyncNodeKind]:
    """Clasifica un nodo de un flujo de sincronizacion (None si no aplica)."""
    node_type = (node.type or "").lower()
    if node_type == "input":
        return SyncNodeKind.INPUT
    if node_type == "output":
        return SyncNodeKind.OUTPUT
    label = node.label or node.data.get("label") or ""
    if node_type == "mapping" or label == MAPPING_NODE_LABEL:
        return SyncNodeKind.MAPPING
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes")


def _as_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _as_str(value: Any) -> str:
    return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class InputConfig:
    """Nodo de entrada: conexion de origen, SQL y tamano de batch."""

    node_id: str
    data_source_id: str
    sql: str
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass(frozen=True)
class FieldMapping:
    source: str
    target: str = ""

    @property
    def effective_target(self) -> str:
        return self.target or self.source


@dataclass(frozen=True)
class MappingConfig:
    """Etapa de mapeo: lista ordenada de renombres origen -> destino."""

    node_id: str
    mappings: List[FieldMapping] = field(default_factory=list)


@dataclass(frozen=True)
class TargetField:
    """Campo declarado de la tabla destino."""

    name: str
    type: str = DEFAULT_FIELD_TYPE
    source_name: str = ""
    comment: str = ""
    is_pk: bool = False

    @property
    def lookup_name(self) -> str:
        """Nombre con el que se busca el valor en la fila mapeada."""
        return self.source_name or self.name


@dataclass(frozen=True)
class OutputConfig:
    """Nodo de salida: tabla destino, modo de escritura y conflicto."""

    node_id: str
    data_source_id: str
    table_name: str
    write_mode: WriteMode = WriteMode.APPEND
    conflict_strategy: ConflictStrategy = ConflictStrategy.UPDATE
    primary_key: str = ""
    fields: List[TargetField] = field(default_factory=list)
    delete_after_sync: bool = False
    source_primary_key: str = ""
    source_table_name: str = ""

    @property
    def effective_primary_key(self) -> str:
        """PK explicita o, en su defecto, el primer campo marcado isPk."""
        if self.primary_key:
            return self.primary_key
        for target_field in self.fields:
            if target_field.is_pk:
                return target_field.name
        return ""

    @property
    def deletes_source(self) -> bool:
        return self.delete_after_sync and bool(self.source_primary_key) and bool(self.source_table_name)


@dataclass(frozen=True)
class SyncFlowSpec:
    """Configuracion tipada de un flujo de sincronizacion."""

    input: InputConfig
    output: OutputConfig
    mappings: List[MappingConfig] = field(default_factory=list)

    @classmethod
    def from_graph(cls, graph: FlowGraph, default_batch_size: int = DEFAULT_BATCH_SIZE) -> "SyncFlowSpec":
        """
        Extrae la configuracion de entrada, mapeos y salida del grafo.

        Raises:
            SyncValidationError: si faltan nodos o campos obligatorios
        """
        input_node: Optional[FlowNode] = None
        output_node: Optional[FlowNode] = None
        mapping_nodes: List[FlowNode] = []

        for node in graph.nodes:
            kind = sync_node_kind(node)
            if kind == SyncNodeKind.INPUT and input_node is None:
                input_node = node
            elif kind == SyncNodeKind.OUTPUT and output_node is None:
                output_node = node
            elif kind == SyncNodeKind.MAPPING:
                mapping_nodes.append(node)

        if input_node is None or output_node is None:
            raise SyncValidationError("Task must have at least one input and one output node")

        spec = cls(
            input=_parse_input(input_node, default_batch_size),
            output=_parse_output(output_node),
            mappings=[_parse_mapping(n) for n in mapping_nodes],
        )
        spec.validate()
        return spec

    def validate(self) -> None:
        """Valida los requisitos minimos antes de cualquier I/O."""
        if not self.input.data_source_id:
            raise SyncValidationError("Source data source is required", field="dataSourceId")
        if not self.input.sql:
            raise SyncValidationError("Source SQL is empty", field="sql")
        if not self.output.data_source_id:
            raise SyncValidationError("Target data source is required", field="dataSourceId")
        if not self.output.table_name:
            raise SyncValidationError("Target table name is empty", field="tableName")
        if not self.output.fields:
            raise SyncValidationError("Target field list is empty", field="fields")


def _parse_input(node: FlowNode, default_batch_size: int) -> InputConfig:
    data = node.data
    return InputConfig(
        node_id=node.id,
        data_source_id=_as_str(data.get("dataSourceId")),
        sql=_as_str(data.get("sql")),
        batch_size=_as_int(data.get("batchSize"), default_batch_size),
    )


def _parse_mapping(node: FlowNode) -> MappingConfig:
    raw = node.data.get("mappings") or []
    mappings = [
        FieldMapping(source=_as_str(m.get("source")), target=_as_str(m.get("target")))
        for m in raw
        if isinstance(m, dict) and _as_str(m.get("source"))
    ]
    return MappingConfig(node_id=node.id, mappings=mappings)


def _parse_output(node: FlowNode) -> OutputConfig:
    data = node.data
    fields = [
        TargetField(
            name=_as_str(f.get("name")),
            type=_as_str(f.get("type")) or DEFAULT_FIELD_TYPE,
            source_name=_as_str(f.get("sourceName")),
            comment=_as_str(f.get("comment")),
            is_pk=_as_bool(f.get("isPk")),
        )
        for f in data.get("fields") or []
        if isinstance(f, dict) and _as_str(f.get("name"))
    ]

    write_mode = _as_str(data.get("writeMode")).upper() or WriteMode.APPEND.value
    conflict = _as_str(data.get("conflictStrategy")).upper() or ConflictStrategy.UPDATE.value
    try:
        write_mode_enum = WriteMode(write_mode)
    except ValueError:
        raise SyncValidationError(f"Unsupported write mode: {write_mode}", field="writeMode")
    try:
        conflict_enum = ConflictStrategy(conflict)
    except ValueError:
        raise SyncValidationError(f"Unsupported conflict strategy: {conflict}", field="conflictStrategy")

    return OutputConfig(
        node_id=node.id,
        data_source_id=_as_str(data.get("dataSourceId")),
        table_name=_as_str(data.get("tableName")),
        write_mode=write_mode_enum,
        conflict_strategy=conflict_enum,
        primary_key=_as_str(data.get("primaryKey")),
        fields=fields,
        delete_after_sync=_as_bool(data.get("deleteAfterSync")),
        source_primary_key=_as_str(data.get("sourcePrimaryKey")),
        source_table_name=_as_str(data.get("sourceTableName")),
    )


@dataclass
class SyncTaskDefinition:
    """
    Definicion persistida de una tarea (o carpeta) del arbol de tareas.
    El contenido es el JSON del flujo tal como lo guarda el editor.
    """

    id: Optional[int] = None
    name: str = ""
    type: TaskType = TaskType.TASK
    parent_id: Optional[int] = None
    description: Optional[str] = None
    cron: Optional[str] = None
    content: Optional[str] = None
    status: TaskStatus = TaskStatus.DISABLED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_folder(self) -> bool:
        return self.type == TaskType.FOLDER

    @property
    def is_enabled(self) -> bool:
        return self.status == TaskStatus.ENABLED

    def is_schedulable(self) -> bool:
        """Una tarea se programa si esta habilitada, no es carpeta y tiene cron."""
        return self.is_enabled and not self.is_folder and bool((self.cron or "").strip())

    def graph(self) -> FlowGraph:
        return FlowGraph.from_json(self.content)

    def flow_spec(self, default_batch_size: int = DEFAULT_BATCH_SIZE) -> SyncFlowSpec:
        """Parsea el flujo; un JSON invalido se reporta como error de validacion."""
        try:
            graph = self.graph()
        except ValueError as e:
            raise SyncValidationError(f"Invalid flow content: {e}", field="content")
        return SyncFlowSpec.from_graph(graph, default_batch_size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value if isinstance(self.type, TaskType) else self.type,
            "parentId": self.parent_id,
            "description": self.description,
            "cron": self.cron,
            "status": self.status.value if isinstance(self.status, TaskStatus) else self.status,
        }
