"""
Motor de scripts para los nodos SCRIPT de los flujos de endpoints.

El script no tiene acceso al host: solo ve las variables del contexto y las
capacidades que se le inyectan (`log` y `db`). El motor es intercambiable;
el interprete depende solo del protocolo `ScriptEngine`.

`SafeScriptEngine` evalua un subconjunto de Python recorriendo el AST:
- Sentencias: asignaciones, asignaciones aumentadas, expresiones, if, for, pass
- Sin imports, sin definiciones de funciones/clases, sin nombres `_privados`
- El resultado es el valor de la ultima sentencia (expresion o asignacion)

Uso:
    engine = SafeScriptEngine()
    engine.evaluate("total = len(queryResult)\\n{'total': total}", {"queryResult": rows})
"""
from __future__ import annotations

import ast
import operator
import re
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Protocol

from loguru import logger

from app.shared.exceptions.flow import ScriptError


MAX_LOOP_ITERATIONS = 100_000
MAX_RANGE_SIZE = 100_000


class ScriptEngine(Protocol):
    """Contrato de un motor de scripts."""

    def evaluate(self, script: str, binding: Dict[str, Any]) -> Any:
        ...


class ScriptCapability:
    """Objeto expuesto al script; solo los metodos de `exposed` son accesibles."""

    exposed: FrozenSet[str] = frozenset()


class ScriptLogger(ScriptCapability):
    """Capacidad `log`: reenvia a loguru con context="script"."""

    exposed = frozenset({"debug", "info", "warn", "warning", "error"})

    def __init__(self, node_id: Optional[str] = None):
        self._logger = logger.bind(context="script", node_id=node_id)

    def debug(self, message: Any) -> None:
        self._logger.debug(str(message))

    def info(self, message: Any) -> None:
        self._logger.info(str(message))

    def warning(self, message: Any) -> None:
        self._logger.warning(str(message))

    warn = warning

    def error(self, message: Any) -> None:
        self._logger.error(str(message))


# Metodos de tipos basicos que el script puede invocar
_SAFE_METHODS: Dict[type, FrozenSet[str]] = {
    str: frozenset({
        "lower", "upper", "strip", "lstrip", "rstrip", "split", "join", "replace",
        "startswith", "endswith", "title", "capitalize", "isdigit", "find", "zfill",
    }),
    dict: frozenset({"get", "keys", "values", "items", "copy", "update", "pop", "setdefault"}),
    list: frozenset({"append", "extend", "index", "count", "copy", "pop", "insert", "sort", "reverse"}),
    tuple: frozenset({"index", "count"}),
}


def _safe_range(*args: int) -> range:
    r = range(*args)
    if len(r) > MAX_RANGE_SIZE:
        raise ValueError(f"range demasiado grande ({len(r)})")
    return r


_BUILTINS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "sum": sum,
    "sorted": sorted,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "set": set,
    "range": _safe_range,
    "enumerate": enumerate,
    "zip": zip,
    "any": any,
    "all": all,
}

_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARISONS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda x, y: x in y,
    ast.NotIn: lambda x, y: x not in y,
}

_PRIVATE_NAME = re.compile(r"^_")


class SafeScriptEngine:
    """Evaluador de scripts restringido basado en `ast`."""

    def evaluate(self, script: str, binding: Dict[str, Any]) -> Any:
        try:
            tree = ast.parse(script, mode="exec")
        except SyntaxError as e:
            raise ScriptError(f"Syntax error at line {e.lineno}: {e.msg}")

        scope: Dict[str, Any] = dict(binding)
        try:
            return self._exec_block(tree.body, scope)
        except ScriptError:
            raise
        except Exception as e:
            raise ScriptError(f"{type(e).__name__}: {e}")

    # ------------------------------------------------------------------
    # Sentencias
    # ------------------------------------------------------------------

    def _exec_block(self, statements: List[ast.stmt], scope: Dict[str, Any]) -> Any:
        result = None
        for statement in statements:
            result = self._exec_statement(statement, scope)
        return result

    def _exec_statement(self, node: ast.stmt, scope: Dict[str, Any]) -> Any:
        if isinstance(node, ast.Expr):
            return self._eval(node.value, scope)

        if isinstance(node, ast.Assign):
            value = self._eval(node.value, scope)
            for target in node.targets:
                self._assign(target, value, scope)
            return value

        if isinstance(node, ast.AugAssign):
            op = _BIN_OPS.get(type(node.op))
            if op is None:
                raise ScriptError(f"Unsupported operator: {type(node.op).__name__}")
            current = self._eval(node.target, scope) if not isinstance(node.target, ast.Name) else self._lookup(node.target.id, scope)
            value = op(current, self._eval(node.value, scope))
            self._assign(node.target, value, scope)
            return value

        if isinstance(node, ast.If):
            branch = node.body if self._eval(node.test, scope) else node.orelse
            return self._exec_block(branch, scope)

        if isinstance(node, ast.For):
            result = None
            for i, item in enumerate(self._eval(node.iter, scope)):
                if i >= MAX_LOOP_ITERATIONS:
                    raise ScriptError(f"Loop exceeded {MAX_LOOP_ITERATIONS} iterations")
                self._assign(node.target, item, scope)
                result = self._exec_block(node.body, scope)
            return result

        if isinstance(node, ast.Pass):
            return None

        raise ScriptError(f"Statement not allowed: {type(node).__name__}")

    def _assign(self, target: ast.expr, value: Any, scope: Dict[str, Any]) -> None:
        if isinstance(target, ast.Name):
            self._check_name(target.id)
            scope[target.id] = value
        elif isinstance(target, (ast.Tuple, ast.List)):
            values = list(value)
            if len(values) != len(target.elts):
                raise ScriptError("Unpacking mismatch")
            for element, item in zip(target.elts, values):
                self._assign(element, item, scope)
        elif isinstance(target, ast.Subscript):
            container = self._eval(target.value, scope)
            if not isinstance(container, (dict, list)):
                raise ScriptError("Only dict and list items can be assigned")
            container[self._eval(target.slice, scope)] = value
        else:
            raise ScriptError(f"Assignment target not allowed: {type(target).__name__}")

    # ------------------------------------------------------------------
    # Expresiones
    # ------------------------------------------------------------------

    def _eval(self, node: ast.expr, scope: Dict[str, Any]) -> Any:
        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            return self._lookup(node.id, scope)

        if isinstance(node, ast.Attribute):
            return self._attribute(self._eval(node.value, scope), node.attr)

        if isinstance(node, ast.Subscript):
            container = self._eval(node.value, scope)
            key = self._eval(node.slice, scope)
            if container is None:
                return None
            if isinstance(container, dict):
                return container.get(key)
            return container[key]

        if isinstance(node, ast.Slice):
            return slice(
                self._eval(node.lower, scope) if node.lower else None,
                self._eval(node.upper, scope) if node.upper else None,
                self._eval(node.step, scope) if node.step else None,
            )

        if isinstance(node, ast.BinOp):
            op = _BIN_OPS.get(type(node.op))
            if op is None:
                raise ScriptError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval(node.left, scope), self._eval(node.right, scope))

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPS.get(type(node.op))
            if op is None:
                raise ScriptError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval(node.operand, scope))

        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                value = True
                for v in node.values:
                    value = self._eval(v, scope)
                    if not value:
                        return value
                return value
            value = False
            for v in node.values:
                value = self._eval(v, scope)
                if value:
                    return value
            return value

        if isinstance(node, ast.Compare):
            left = self._eval(node.left, scope)
            for op_node, right_node in zip(node.ops, node.comparators):
                right = self._eval(right_node, scope)
                if not _COMPARISONS[type(op_node)](left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.IfExp):
            return self._eval(node.body if self._eval(node.test, scope) else node.orelse, scope)

        if isinstance(node, ast.Call):
            func = self._eval(node.func, scope)
            if not callable(func):
                raise ScriptError("Object is not callable")
            args: List[Any] = []
            for arg in node.args:
                if isinstance(arg, ast.Starred):
                    args.extend(self._eval(arg.value, scope))
                else:
                    args.append(self._eval(arg, scope))
            kwargs = {}
            for kw in node.keywords:
                if kw.arg is None:
                    raise ScriptError("**kwargs not allowed")
                kwargs[kw.arg] = self._eval(kw.value, scope)
            return func(*args, **kwargs)

        if isinstance(node, ast.List):
            return [self._eval(e, scope) for e in node.elts]

        if isinstance(node, ast.Tuple):
            return tuple(self._eval(e, scope) for e in node.elts)

        if isinstance(node, ast.Set):
            return {self._eval(e, scope) for e in node.elts}

        if isinstance(node, ast.Dict):
            result: Dict[Any, Any] = {}
            for k, v in zip(node.keys, node.values):
                if k is None:
                    result.update(self._eval(v, scope))
                else:
                    result[self._eval(k, scope)] = self._eval(v, scope)
            return result

        if isinstance(node, ast.ListComp):
            return self._list_comprehension(node, scope)

        if isinstance(node, ast.JoinedStr):
            parts = []
            for value in node.values:
                if isinstance(value, ast.FormattedValue):
                    spec = self._eval(value.format_spec, scope) if value.format_spec else ""
                    parts.append(format(self._eval(value.value, scope), spec))
                else:
                    parts.append(self._eval(value, scope))
            return "".join(str(p) for p in parts)

        raise ScriptError(f"Expression not allowed: {type(node).__name__}")

    def _list_comprehension(self, node: ast.ListComp, scope: Dict[str, Any]) -> List[Any]:
        if len(node.generators) != 1:
            raise ScriptError("Only single-generator comprehensions are allowed")
        generator = node.generators[0]
        inner = dict(scope)
        result = []
        for i, item in enumerate(self._eval(generator.iter, scope)):
            if i >= MAX_LOOP_ITERATIONS:
                raise ScriptError(f"Comprehension exceeded {MAX_LOOP_ITERATIONS} iterations")
            self._assign(generator.target, item, inner)
            if all(self._eval(cond, inner) for cond in generator.ifs):
                result.append(self._eval(node.elt, inner))
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lookup(self, name: str, scope: Dict[str, Any]) -> Any:
        self._check_name(name)
        if name in scope:
            return scope[name]
        if name in _BUILTINS:
            return _BUILTINS[name]
        if name in ("True", "False", "None"):
            return {"True": True, "False": False, "None": None}[name]
        raise ScriptError(f"Name '{name}' is not defined")

    @staticmethod
    def _check_name(name: str) -> None:
        if _PRIVATE_NAME.match(name):
            raise ScriptError(f"Access to '{name}' is not allowed")

    def _attribute(self, obj: Any, attr: str) -> Any:
        self._check_name(attr)
        if isinstance(obj, ScriptCapability):
            if attr in obj.exposed:
                return getattr(obj, attr)
            raise ScriptError(f"Attribute '{attr}' is not available")
        if isinstance(obj, dict) and attr in obj:
            return obj[attr]
        for allowed_type, methods in _SAFE_METHODS.items():
            if isinstance(obj, allowed_type) and attr in methods:
                return getattr(obj, attr)
        if obj is None:
            return None
        raise ScriptError(f"Attribute '{attr}' is not available on {type(obj).__name__}")
