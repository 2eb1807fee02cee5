"""
Tests unitarios para SafeScriptEngine.

Verifica el subconjunto de Python permitido en los nodos SCRIPT y que el
script no pueda salir de su binding.
"""
import pytest

from app.infrastructure.flow.script_engine import SafeScriptEngine, ScriptCapability, ScriptLogger
from app.shared.exceptions.flow import ScriptError


@pytest.fixture
def engine() -> SafeScriptEngine:
    return SafeScriptEngine()


class TestScriptEvaluation:
    """Tests de evaluacion de scripts validos."""

    def test_last_expression_is_the_result(self, engine: SafeScriptEngine) -> None:
        assert engine.evaluate("x = 2\nx * 21", {}) == 42

    def test_last_assignment_is_the_result(self, engine: SafeScriptEngine) -> None:
        assert engine.evaluate("total = 3 + 4", {}) == 7

    def test_binding_variables_are_visible(self, engine: SafeScriptEngine) -> None:
        rows = [{"id": 1, "amount": 10}, {"id": 2, "amount": 5}]

        result = engine.evaluate("sum([r['amount'] for r in queryResult])", {"queryResult": rows})

        assert result == 15

    def test_dict_attribute_access(self, engine: SafeScriptEngine) -> None:
        """`row.name` lee la clave del dict (estilo de los scripts del editor)."""
        assert engine.evaluate("row.name.upper()", {"row": {"name": "ana"}}) == "ANA"

    def test_missing_dict_key_returns_none(self, engine: SafeScriptEngine) -> None:
        assert engine.evaluate("params['missing']", {"params": {}}) is None

    def test_if_and_for(self, engine: SafeScriptEngine) -> None:
        script = (
            "out = []\n"
            "for r in rows:\n"
            "    if r['age'] >= 18:\n"
            "        out.append(r['name'])\n"
            "    else:\n"
            "        pass\n"
            "{'adults': out, 'count': len(out)}"
        )
        rows = [{"name": "a", "age": 30}, {"name": "b", "age": 10}, {"name": "c", "age": 18}]

        assert engine.evaluate(script, {"rows": rows}) == {"adults": ["a", "c"], "count": 2}

    def test_augmented_assignment_and_fstring(self, engine: SafeScriptEngine) -> None:
        script = "n = 1\nn += 4\nf'total={n}'"

        assert engine.evaluate(script, {}) == "total=5"

    def test_subscript_assignment(self, engine: SafeScriptEngine) -> None:
        assert engine.evaluate("d = {}\nd['k'] = 1\nd", {}) == {"k": 1}

    def test_binding_is_not_mutated_for_new_names(self, engine: SafeScriptEngine) -> None:
        binding = {"a": 1}

        engine.evaluate("b = a + 1", binding)

        assert "b" not in binding

    def test_empty_script_returns_none(self, engine: SafeScriptEngine) -> None:
        assert engine.evaluate("", {}) is None


class TestScriptRestrictions:
    """Tests de las restricciones del motor."""

    @pytest.mark.parametrize("script", [
        "import os",
        "def f():\n    return 1",
        "class A:\n    pass",
        "while True:\n    pass",
        "lambda: 1",
    ])
    def test_forbidden_constructs(self, engine: SafeScriptEngine, script: str) -> None:
        with pytest.raises(ScriptError):
            engine.evaluate(script, {})

    def test_private_names_are_rejected(self, engine: SafeScriptEngine) -> None:
        with pytest.raises(ScriptError, match="not allowed"):
            engine.evaluate("x = 1\nx.__class__", {})

    def test_builtins_outside_whitelist_are_undefined(self, engine: SafeScriptEngine) -> None:
        with pytest.raises(ScriptError, match="not defined"):
            engine.evaluate("open('/etc/passwd')", {})

    def test_capability_only_exposes_declared_methods(self, engine: SafeScriptEngine) -> None:
        class Probe(ScriptCapability):
            exposed = frozenset({"ping"})

            def ping(self):
                return "pong"

            def secret(self):
                return "nope"

        assert engine.evaluate("probe.ping()", {"probe": Probe()}) == "pong"
        with pytest.raises(ScriptError):
            engine.evaluate("probe.secret()", {"probe": Probe()})

    def test_huge_range_is_rejected(self, engine: SafeScriptEngine) -> None:
        with pytest.raises(ScriptError):
            engine.evaluate("range(10 ** 9)", {})

    def test_syntax_error_reports_line(self, engine: SafeScriptEngine) -> None:
        with pytest.raises(ScriptError, match="line 2"):
            engine.evaluate("x = 1\nx = = 2", {})

    def test_runtime_error_is_wrapped(self, engine: SafeScriptEngine) -> None:
        with pytest.raises(ScriptError, match="ZeroDivisionError"):
            engine.evaluate("1 / 0", {})


class TestScriptLogger:
    """Tests para la capacidad `log`."""

    def test_logger_methods_are_callable_from_script(self, engine: SafeScriptEngine) -> None:
        script = "log.info('hola')\nlog.warn('cuidado')\nlog.error('fallo')\n'ok'"

        assert engine.evaluate(script, {"log": ScriptLogger("n1")}) == "ok"
