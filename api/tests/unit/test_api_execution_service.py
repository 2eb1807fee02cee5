"""
Tests unitarios para ApiExecutionService.

El repositorio y el interprete se reemplazan por mocks: aqui solo importa
la resolucion por path + metodo, las verificaciones de estado y acceso, y
el contexto que llega al interprete.
"""
import json
from unittest.mock import MagicMock

import pytest

from app.application.services.api_execution_service import ApiExecutionService
from app.domain.entities.api_definition import ApiDefinition
from app.shared.constants.sync_constants import ApiStatus, ApiType
from app.shared.exceptions.flow import ApiNotFoundError, ApiOfflineError, AuthError, FlowExecutionError


def _definition(**overrides) -> ApiDefinition:
    values = dict(
        id="api-1",
        name="clientes",
        path="clientes",
        method="get",
        api_type=ApiType.PUBLIC,
        status=ApiStatus.ONLINE,
        content=json.dumps({"nodes": [], "edges": []}),
    )
    values.update(overrides)
    return ApiDefinition(**values)


@pytest.fixture
def repository() -> MagicMock:
    return MagicMock()


@pytest.fixture
def interpreter() -> MagicMock:
    mock = MagicMock()
    mock.execute_flow.return_value = {"ok": True}
    return mock


@pytest.fixture
def service(repository, interpreter) -> ApiExecutionService:
    return ApiExecutionService(repository, interpreter)


class TestExecute:
    """Tests de execute."""

    def test_lookup_normalizes_path_and_method(self, service, repository, interpreter) -> None:
        repository.find_by_path_and_method.return_value = _definition()

        result = service.execute("clientes", "get", {"id": 3})

        assert result == {"ok": True}
        repository.find_by_path_and_method.assert_called_once_with("/clientes", "GET")
        _graph, context = interpreter.execute_flow.call_args.args
        assert context == {"id": 3}

    def test_unknown_endpoint(self, service, repository, interpreter) -> None:
        repository.find_by_path_and_method.return_value = None

        with pytest.raises(ApiNotFoundError) as exc_info:
            service.execute("/nada", "POST")

        assert exc_info.value.message == "API not found: POST /nada"
        interpreter.execute_flow.assert_not_called()

    @pytest.mark.parametrize("status", [ApiStatus.DRAFT, ApiStatus.OFFLINE])
    def test_unpublished_endpoint(self, service, repository, interpreter, status) -> None:
        repository.find_by_path_and_method.return_value = _definition(status=status)

        with pytest.raises(ApiOfflineError):
            service.execute("/clientes", "GET")

        interpreter.execute_flow.assert_not_called()

    def test_private_endpoint_requires_bearer(self, service, repository, interpreter) -> None:
        repository.find_by_path_and_method.return_value = _definition(api_type=ApiType.PRIVATE)

        with pytest.raises(AuthError):
            service.execute("/clientes", "GET", {}, {"accept": "application/json"})

        interpreter.execute_flow.assert_not_called()

    def test_authorization_header_reaches_the_context(self, service, repository, interpreter) -> None:
        repository.find_by_path_and_method.return_value = _definition(api_type=ApiType.PRIVATE)

        service.execute("/clientes", "GET", {"q": "a"}, {"authorization": "Bearer t"})

        _graph, context = interpreter.execute_flow.call_args.args
        assert context == {"q": "a", "Authorization": "Bearer t"}


class TestDebugAndDocs:
    """Tests de debug_execute y docs."""

    def test_debug_skips_status_and_access(self, service, interpreter) -> None:
        definition = _definition(status=ApiStatus.DRAFT, api_type=ApiType.PRIVATE)

        assert service.debug_execute(definition, {"x": 1}) == {"ok": True}
        interpreter.execute_flow.assert_called_once()

    def test_invalid_content_is_an_execution_failure(self, service, interpreter) -> None:
        with pytest.raises(FlowExecutionError) as exc_info:
            service.debug_execute(_definition(content="{no es json"))

        assert exc_info.value.message.startswith("Execution failed: Invalid flow content")
        interpreter.execute_flow.assert_not_called()

    def test_docs_document_the_exec_path(self) -> None:
        definition = _definition(response_example='{"id": 1}', description="Lista clientes")

        doc = ApiExecutionService.docs(definition)

        operation = doc["paths"]["/api/exec/clientes"]["get"]
        assert doc["openapi"] == "3.0.0"
        assert operation["summary"] == "clientes"
        assert operation["responses"]["200"]["content"]["application/json"]["schema"]["example"] == {"id": 1}

    def test_docs_keep_non_json_example_as_text(self) -> None:
        doc = ApiExecutionService.docs(_definition(response_example="texto"))

        schema = doc["paths"]["/api/exec/clientes"]["get"]["responses"]["200"]["content"]["application/json"]["schema"]
        assert schema["example"] == "texto"
