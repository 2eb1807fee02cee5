"""
Servicio de ejecucion de endpoints definidos como flujo.

Resuelve la definicion por path + metodo, valida publicacion y acceso, y
delega la ejecucion en el FlowInterpreter.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from app.domain.entities.api_definition import ApiDefinition
from app.domain.repositories.api_definition_repository import IApiDefinitionRepository
from app.infrastructure.flow.interpreter import FlowInterpreter, has_bearer_credential
from app.shared.exceptions.flow import (
    ApiNotFoundError,
    ApiOfflineError,
    AuthError,
    FlowExecutionError,
)


EXEC_PREFIX = "/api/exec"


class ApiExecutionService:
    """Punto de entrada de `/api/exec/{path}` y de la depuracion de endpoints."""

    def __init__(self, api_repository: IApiDefinitionRepository, interpreter: FlowInterpreter):
        self.api_repository = api_repository
        self.interpreter = interpreter

    def execute(
        self,
        path: str,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """
        Ejecuta el endpoint publicado en `path` para el metodo HTTP dado.

        Raises:
            ApiNotFoundError: no hay definicion para path + metodo
            ApiOfflineError: la definicion no esta ONLINE
            AuthError: endpoint PRIVATE sin credencial bearer
            FlowExecutionError: fallo de algun nodo del flujo
        """
        normalized = path if path.startswith("/") else "/" + path
        definition = self.api_repository.find_by_path_and_method(normalized, method.upper())
        if definition is None:
            raise ApiNotFoundError(method.upper(), normalized)
        if not definition.is_online:
            raise ApiOfflineError(definition.id)

        context = self._build_context(params, headers)
        if definition.is_private and not has_bearer_credential(context):
            raise AuthError("Authentication required")

        logger.info(f"Ejecutando endpoint {definition.method} {definition.path} ({definition.name})")
        return self._run(definition, context)

    def debug_execute(self, definition: ApiDefinition, params: Optional[Dict[str, Any]] = None,
                      headers: Optional[Mapping[str, str]] = None) -> Any:
        """Ejecuta el flujo sin verificar estado ni acceso (editor de endpoints)."""
        return self._run(definition, self._build_context(params, headers))

    def _run(self, definition: ApiDefinition, context: Dict[str, Any]) -> Any:
        try:
            graph = definition.graph()
        except ValueError as e:
            raise FlowExecutionError(f"Invalid flow content: {e}", original=e) from e
        return self.interpreter.execute_flow(graph, context)

    @staticmethod
    def _build_context(params: Optional[Dict[str, Any]], headers: Optional[Mapping[str, str]]) -> Dict[str, Any]:
        context = dict(params or {})
        for key, value in (headers or {}).items():
            if key.lower() == "authorization":
                context.setdefault("Authorization", value)
        return context

    @staticmethod
    def docs(definition: ApiDefinition) -> Dict[str, Any]:
        """Documento OpenAPI 3.0 minimo para el endpoint."""
        schema: Dict[str, Any] = {"type": "object"}
        if definition.response_example:
            try:
                schema["example"] = json.loads(definition.response_example)
            except ValueError:
                schema["example"] = definition.response_example

        operation = {
            "summary": definition.name,
            "description": definition.description,
            "tags": [definition.api_type.value],
            "responses": {
                "200": {
                    "description": "Successful response",
                    "content": {"application/json": {"schema": schema}},
                }
            },
        }
        return {
            "openapi": "3.0.0",
            "info": {
                "title": definition.name,
                "description": definition.description,
                "version": definition.version,
            },
            "paths": {f"{EXEC_PREFIX}{definition.path}": {definition.method.lower(): operation}},
        }
