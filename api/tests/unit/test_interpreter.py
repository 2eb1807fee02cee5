"""
Tests unitarios para FlowInterpreter.

Verifica el recorrido topologico desde ENTRY, los handlers por tipo de nodo
y el envoltorio de errores (FlowExecutionError).
"""
from typing import Any, Dict, List

import pytest

from app.domain.entities.flow_graph import FlowGraph
from app.infrastructure.flow.interpreter import (
    FlowInterpreter,
    has_bearer_credential,
    substitute_placeholders,
)
from app.shared.exceptions.flow import FlowExecutionError
from tests.support import create_users_table


def _node(node_id: str, kind: str, **config: Any) -> Dict[str, Any]:
    return {"id": node_id, "type": "default", "data": {"type": kind, "config": config}}


def _edges(*pairs: str) -> List[Dict[str, str]]:
    return [{"source": p.split(">")[0], "target": p.split(">")[1]} for p in pairs]


def _graph(nodes, edges=()) -> FlowGraph:
    return FlowGraph.from_dict({"nodes": list(nodes), "edges": list(edges)})


@pytest.fixture
def interpreter(connections) -> FlowInterpreter:
    return FlowInterpreter(connections)


@pytest.fixture
def seeded_source(source_ds, source_engine):
    create_users_table(source_engine, [
        {"id": 1, "name": "ana", "age": 31},
        {"id": 2, "name": "o'hara", "age": 45},
        {"id": 3, "name": "luis", "age": 27},
    ])
    return source_ds


class TestPlaceholders:
    """Tests para substitute_placeholders."""

    def test_known_keys_are_replaced(self) -> None:
        assert substitute_placeholders("id = ${id} AND x = ${x}", {"id": 5, "x": "a"}) == "id = 5 AND x = a"

    def test_missing_and_none_keys_are_kept(self) -> None:
        sql = "a = ${a} AND b = ${b}"

        assert substitute_placeholders(sql, {"b": None}) == sql


class TestBearerCredential:
    """Tests para has_bearer_credential."""

    @pytest.mark.parametrize("context,expected", [
        ({"Authorization": "Bearer abc"}, True),
        ({"authorization": "bearer abc"}, True),
        ({"token": "t-1"}, True),
        ({"Authorization": "Basic abc"}, False),
        ({"Authorization": "Bearer "}, False),
        ({}, False),
    ])
    def test_detection(self, context, expected) -> None:
        assert has_bearer_credential(context) is expected


class TestFlowTraversal:
    """Tests del recorrido del flujo."""

    def test_entry_query_output_returns_rows(self, interpreter: FlowInterpreter, seeded_source) -> None:
        graph = _graph(
            [
                _node("e", "ENTRY"),
                _node("q", "QUERY", dataSourceId=str(seeded_source.id),
                      sql="SELECT id, name FROM src_users WHERE id <= ${maxId} ORDER BY id"),
                _node("o", "OUTPUT"),
            ],
            _edges("e>q", "q>o"),
        )

        result = interpreter.execute_flow(graph, {"maxId": 2})

        assert result == [{"id": 1, "name": "ana"}, {"id": 2, "name": "o'hara"}]

    def test_script_result_wins_over_query_result(self, interpreter: FlowInterpreter, seeded_source) -> None:
        graph = _graph(
            [
                _node("e", "ENTRY"),
                _node("q", "QUERY", dataSourceId=str(seeded_source.id), sql="SELECT age FROM src_users"),
                _node("s", "SCRIPT", script="{'count': len(queryResult), 'total': sum([r['age'] for r in queryResult])}"),
                _node("o", "OUTPUT"),
            ],
            _edges("e>q", "q>s", "s>o"),
        )

        assert interpreter.execute_flow(graph) == {"count": 3, "total": 103}

    def test_each_node_runs_once_in_a_diamond(self, interpreter: FlowInterpreter) -> None:
        trace: List[str] = []
        graph = _graph(
            [
                _node("e", "ENTRY"),
                _node("s1", "SCRIPT", script="trace.append('s1')\n's1'"),
                _node("s2", "SCRIPT", script="trace.append('s2')\n's2'"),
                _node("o", "OUTPUT"),
            ],
            _edges("e>s1", "e>s2", "s1>o", "s2>o"),
        )

        result = interpreter.execute_flow(graph, {"trace": trace})

        assert trace == ["s1", "s2"]
        assert result == "s2"

    def test_cycle_nodes_are_not_executed(self, interpreter: FlowInterpreter) -> None:
        """Los nodos de un ciclo nunca llegan a grado 0: no se ejecutan."""
        graph = _graph(
            [
                _node("e", "ENTRY"),
                _node("o", "OUTPUT", outputType="STATIC", content="done"),
                _node("x", "SCRIPT", script="1 / 0"),
                _node("y", "SCRIPT", script="1 / 0"),
            ],
            _edges("e>o", "x>y", "y>x"),
        )

        assert interpreter.execute_flow(graph) == "done"

    def test_without_entry_runs_first_executable_node(self, interpreter: FlowInterpreter) -> None:
        graph = _graph([
            _node("o", "OUTPUT", outputType="STATIC", content="ignored"),
            _node("s", "SCRIPT", script="'first'"),
            _node("s2", "SCRIPT", script="'second'"),
        ])

        assert interpreter.execute_flow(graph) == "first"

    def test_without_executable_nodes(self, interpreter: FlowInterpreter) -> None:
        graph = _graph([_node("o", "OUTPUT")])

        assert interpreter.execute_flow(graph) == {"message": "No executable node found"}

    def test_unknown_nodes_are_skipped(self, interpreter: FlowInterpreter) -> None:
        graph = _graph(
            [
                _node("e", "ENTRY"),
                _node("c", "COMMENT"),
                _node("o", "OUTPUT", outputType="STATIC", content={"ok": True}),
            ],
            _edges("e>c", "c>o"),
        )

        assert interpreter.execute_flow(graph) == {"ok": True}

    def test_output_without_results_returns_context(self, interpreter: FlowInterpreter) -> None:
        graph = _graph([_node("e", "ENTRY"), _node("o", "OUTPUT")], _edges("e>o"))

        assert interpreter.execute_flow(graph, {"a": 1}) == {"a": 1}


class TestNodeHandlers:
    """Tests de los handlers AUTH, SCRIPT y OUTPUT."""

    @pytest.fixture
    def auth_graph(self) -> FlowGraph:
        return _graph(
            [
                _node("e", "ENTRY"),
                _node("a", "AUTH"),
                _node("o", "OUTPUT", outputType="STATIC", content="ok"),
            ],
            _edges("e>a", "a>o"),
        )

    def test_auth_accepts_bearer_header(self, interpreter: FlowInterpreter, auth_graph) -> None:
        assert interpreter.execute_flow(auth_graph, {"Authorization": "Bearer abc"}) == "ok"

    def test_auth_accepts_token_param(self, interpreter: FlowInterpreter, auth_graph) -> None:
        assert interpreter.execute_flow(auth_graph, {"token": "abc"}) == "ok"

    def test_auth_rejects_missing_credential(self, interpreter: FlowInterpreter, auth_graph) -> None:
        with pytest.raises(FlowExecutionError, match="Authentication required"):
            interpreter.execute_flow(auth_graph, {})

    def test_static_output_uses_type_alias(self, interpreter: FlowInterpreter) -> None:
        graph = _graph([_node("e", "ENTRY"), _node("o", "RESPONSE", type="STATIC", content=[1, 2])], _edges("e>o"))

        assert interpreter.execute_flow(graph) == [1, 2]

    def test_legacy_script_alias_publishes_both_keys(self, interpreter: FlowInterpreter) -> None:
        graph = _graph(
            [
                _node("e", "ENTRY"),
                _node("g", "GROOVY", code="'legacy'"),
                _node("s", "SCRIPT", script="[scriptResult, groovyResult]"),
            ],
            _edges("e>g", "g>s"),
        )

        assert interpreter.execute_flow(graph) == ["legacy", "legacy"]

    def test_empty_script_returns_error_payload(self, interpreter: FlowInterpreter) -> None:
        graph = _graph([_node("e", "ENTRY"), _node("s", "SCRIPT", script="  ")], _edges("e>s"))

        assert interpreter.execute_flow(graph) == {"error": "No script provided in script node"}

    def test_script_failure_is_wrapped(self, interpreter: FlowInterpreter) -> None:
        graph = _graph([_node("e", "ENTRY"), _node("s", "SCRIPT", script="1 / 0")], _edges("e>s"))

        with pytest.raises(FlowExecutionError) as exc_info:
            interpreter.execute_flow(graph)

        assert exc_info.value.message.startswith("Execution failed: Script execution failed: ZeroDivisionError")
        assert exc_info.value.status_code == 500

    def test_script_db_query_quotes_parameters(self, interpreter: FlowInterpreter, seeded_source) -> None:
        script = (
            "rows = db.query(ds, 'SELECT id FROM src_users WHERE name = ?', name)\n"
            "rows[0]['id']"
        )
        graph = _graph([_node("e", "ENTRY"), _node("s", "SCRIPT", script=script)], _edges("e>s"))

        assert interpreter.execute_flow(graph, {"ds": seeded_source.id, "name": "o'hara"}) == 2

    def test_query_failure_is_wrapped(self, interpreter: FlowInterpreter, seeded_source) -> None:
        graph = _graph(
            [_node("e", "ENTRY"), _node("q", "QUERY", dataSourceId=str(seeded_source.id), sql="SELECT * FROM nope")],
            _edges("e>q"),
        )

        with pytest.raises(FlowExecutionError, match="Query failed"):
            interpreter.execute_flow(graph)

    def test_unknown_data_source_is_wrapped(self, interpreter: FlowInterpreter) -> None:
        graph = _graph(
            [_node("e", "ENTRY"), _node("q", "QUERY", dataSourceId="999", sql="SELECT 1")],
            _edges("e>q"),
        )

        with pytest.raises(FlowExecutionError, match="Data source not found"):
            interpreter.execute_flow(graph)
