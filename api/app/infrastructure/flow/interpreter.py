"""
Interprete de flujos de endpoints (ENTRY -> AUTH -> QUERY -> SCRIPT -> OUTPUT).

Recorre el grafo en orden topologico (algoritmo de Kahn) desde el nodo ENTRY.
Cada nodo se ejecuta como mucho una vez contra un contexto compartido que
acumula resultados (`queryResult`, `scriptResult`). Se retorna el resultado
del ultimo nodo ejecutado.

Los nodos que forman un ciclo nunca alcanzan grado de entrada cero: no se
ejecutan y se registra una advertencia con sus ids.
"""
from __future__ import annotations

import re
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities.flow_graph import FlowGraph, FlowNode
from app.infrastructure.connections.connection_directory import ConnectionDirectory
from app.infrastructure.flow.script_engine import (
    SafeScriptEngine,
    ScriptCapability,
    ScriptEngine,
    ScriptLogger,
)
from app.shared.constants.sync_constants import (
    CTX_LEGACY_SCRIPT_RESULT,
    CTX_QUERY_RESULT,
    CTX_SCRIPT_RESULT,
    ENDPOINT_NODE_ALIASES,
    EndpointNodeKind,
)
from app.shared.exceptions.base import AppException
from app.shared.exceptions.flow import AuthError, FlowExecutionError, ScriptError


Context = Dict[str, Any]

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def node_kind(node: FlowNode) -> EndpointNodeKind:
    """Tipo cerrado del nodo; los tipos desconocidos son UNKNOWN."""
    return ENDPOINT_NODE_ALIASES.get(node.functional_type, EndpointNodeKind.UNKNOWN)


def substitute_placeholders(sql: str, context: Context) -> str:
    """Reemplaza `${clave}` por `str(valor)` para cada entrada no nula del contexto."""
    def _replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        value = context.get(key)
        return match.group(0) if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, sql or "")


def _quote_param(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


class QueryHelper(ScriptCapability):
    """
    Capacidad `db` de los scripts.

    `db.query(data_source_id, sql, *params)` reemplaza cada `?` (en orden)
    por el parametro entre comillas y retorna la lista de filas.
    """

    exposed = frozenset({"query"})

    def __init__(self, connections: ConnectionDirectory):
        self._connections = connections

    def query(self, data_source_id: Any, sql: str, *params: Any) -> List[Dict[str, Any]]:
        parts = sql.split("?")
        pieces = [parts[0]]
        for i, part in enumerate(parts[1:]):
            pieces.append(_quote_param(params[i]) if i < len(params) else "?")
            pieces.append(part)
        return run_query(self._connections, data_source_id, "".join(pieces))


def run_query(connections: ConnectionDirectory, data_source_id: Any, sql: str) -> List[Dict[str, Any]]:
    """Ejecuta un SQL de lectura y retorna las filas como dicts."""
    engine = connections.engine_for(data_source_id)
    with engine.connect() as conn:
        result = conn.exec_driver_sql(sql)
        return [dict(row) for row in result.mappings()]


def has_bearer_credential(context: Context) -> bool:
    """True si el contexto trae `Authorization: Bearer <token>` o un parametro `token`."""
    token = context.get("token")
    if token:
        return True
    for key, value in context.items():
        if isinstance(key, str) and key.lower() == "authorization" and isinstance(value, str):
            scheme, _, credential = value.strip().partition(" ")
            if scheme.lower() == "bearer" and credential.strip():
                return True
    return False


class FlowInterpreter:
    """
    Ejecutor de flujos de endpoints.

    Args:
        connections: Directorio de conexiones para nodos QUERY y `db.query`
        script_engine: Motor de los nodos SCRIPT (default: SafeScriptEngine)
    """

    def __init__(self, connections: ConnectionDirectory, script_engine: Optional[ScriptEngine] = None):
        self._connections = connections
        self._script_engine = script_engine or SafeScriptEngine()

    def execute_flow(self, graph: FlowGraph, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Ejecuta el flujo y retorna el resultado del ultimo nodo.

        Raises:
            FlowExecutionError: si cualquier nodo falla (el contexto se descarta)
        """
        context: Context = dict(params or {})
        try:
            return self._run(graph, context)
        except FlowExecutionError:
            raise
        except AppException as e:
            raise FlowExecutionError(e.message, original=e) from e
        except Exception as e:
            logger.exception(f"Fallo inesperado ejecutando el flujo: {e}")
            raise FlowExecutionError(str(e), original=e) from e

    def _run(self, graph: FlowGraph, context: Context) -> Any:
        entry = next((n for n in graph.nodes if node_kind(n) == EndpointNodeKind.ENTRY), None)
        if entry is None:
            return self._run_without_entry(graph, context)

        in_degree = graph.in_degrees()
        queue: Deque[str] = deque([entry.id])
        visited: Set[str] = set()
        last_result: Any = None

        while queue:
            node_id = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = graph.node_by_id(node_id)
            last_result = self.execute_node(node, context)

            for successor in graph.successors(node_id):
                in_degree[successor] -= 1
                if in_degree[successor] <= 0 and successor not in visited:
                    queue.append(successor)

        starved = [n.id for n in graph.nodes if n.id not in visited and in_degree.get(n.id, 0) > 0]
        if starved:
            logger.warning(f"Nodos no ejecutados (ciclo o predecesor inalcanzable): {starved}")
        return last_result

    def _run_without_entry(self, graph: FlowGraph, context: Context) -> Any:
        # Flujos minimos sin ENTRY: se ejecuta el primer nodo QUERY o SCRIPT
        for node in graph.nodes:
            if node_kind(node) in (EndpointNodeKind.QUERY, EndpointNodeKind.SCRIPT):
                return self.execute_node(node, context)
        return {"message": "No executable node found"}

    # ------------------------------------------------------------------
    # Handlers por tipo de nodo
    # ------------------------------------------------------------------

    def execute_node(self, node: FlowNode, context: Context) -> Any:
        kind = node_kind(node)
        logger.debug(f"Ejecutando nodo {node.id} ({kind.value})")

        if kind == EndpointNodeKind.ENTRY:
            return context
        if kind == EndpointNodeKind.AUTH:
            return self._execute_auth(node, context)
        if kind == EndpointNodeKind.QUERY:
            return self._execute_query(node, context)
        if kind == EndpointNodeKind.SCRIPT:
            return self._execute_script(node, context)
        if kind == EndpointNodeKind.OUTPUT:
            return self._execute_output(node, context)

        logger.debug(f"Nodo {node.id} de tipo desconocido '{node.functional_type}': se omite")
        return None

    @staticmethod
    def _execute_auth(node: FlowNode, context: Context) -> bool:
        if not has_bearer_credential(context):
            raise AuthError("Authentication required")
        return True

    def _execute_query(self, node: FlowNode, context: Context) -> List[Dict[str, Any]]:
        config = node.config
        sql = substitute_placeholders(config.get("sql", ""), context)
        try:
            rows = run_query(self._connections, config.get("dataSourceId"), sql)
        except SQLAlchemyError as e:
            raise FlowExecutionError(f"Query failed: {getattr(e, 'orig', e)}", original=e) from e
        context[CTX_QUERY_RESULT] = rows
        return rows

    def _execute_script(self, node: FlowNode, context: Context) -> Any:
        config = node.config
        script = config.get("script") or config.get("code") or ""
        if not str(script).strip():
            result: Any = {"error": "No script provided in script node"}
        else:
            binding = dict(context)
            binding["log"] = ScriptLogger(node.id)
            binding["db"] = QueryHelper(self._connections)
            try:
                result = self._script_engine.evaluate(str(script), binding)
            except ScriptError:
                raise
            except Exception as e:
                raise ScriptError(str(e)) from e

        context[CTX_SCRIPT_RESULT] = result
        context[CTX_LEGACY_SCRIPT_RESULT] = result
        return result

    @staticmethod
    def _execute_output(node: FlowNode, context: Context) -> Any:
        config = node.config
        output_type = str(config.get("outputType") or config.get("type") or "JSON").upper()
        if output_type == "STATIC":
            return config.get("content")
        if CTX_SCRIPT_RESULT in context:
            return context[CTX_SCRIPT_RESULT]
        if CTX_LEGACY_SCRIPT_RESULT in context:
            return context[CTX_LEGACY_SCRIPT_RESULT]
        if CTX_QUERY_RESULT in context:
            return context[CTX_QUERY_RESULT]
        return context
