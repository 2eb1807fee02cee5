"""
Entidades del dominio.
"""
from app.domain.entities.flow_graph import FlowEdge, FlowGraph, FlowNode
from app.domain.entities.sync_task import SyncFlowSpec, SyncTaskDefinition
from app.domain.entities.sync_run import NodeTrace, SyncRun
from app.domain.entities.api_definition import ApiDefinition
from app.domain.entities.data_source import DataSourceDescriptor

__all__ = [
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "SyncFlowSpec",
    "SyncTaskDefinition",
    "NodeTrace",
    "SyncRun",
    "ApiDefinition",
    "DataSourceDescriptor",
]
