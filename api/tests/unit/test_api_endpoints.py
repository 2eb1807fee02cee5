"""
Tests del contrato HTTP de la API.

Usa la app real con un contenedor construido sobre las bases SQLite de los
fixtures (sin startup: el contenedor se inyecta ya armado).
"""
from __future__ import annotations

import json

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.container import build_container
from app.domain.entities.api_definition import ApiDefinition
from app.shared.constants.sync_constants import ApiStatus, ApiType
from tests.support import create_users_table, users


@pytest.fixture
def container(session_factory, connections, pipeline, scheduler):
    services = build_container(session_factory, connections=connections, pipeline=pipeline, scheduler=scheduler)
    yield services
    for task_id in list(services.lifecycle._manual_threads):
        services.lifecycle.wait_for_task(task_id, timeout=10)


@pytest.fixture
def app(container):
    from main import create_application
    return create_application(container)


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _greeting_flow() -> str:
    return json.dumps({
        "nodes": [
            {"id": "e", "data": {"type": "ENTRY"}},
            {"id": "s", "data": {"type": "SCRIPT", "config": {"script": "{'greeting': 'hola ' + name}"}}},
            {"id": "o", "data": {"type": "OUTPUT"}},
        ],
        "edges": [{"source": "e", "target": "s"}, {"source": "s", "target": "o"}],
    })


def _failing_flow() -> str:
    return json.dumps({
        "nodes": [
            {"id": "e", "data": {"type": "ENTRY"}},
            {"id": "s", "data": {"type": "SCRIPT", "config": {"script": "1 / 0"}}},
        ],
        "edges": [{"source": "e", "target": "s"}],
    })


@pytest.fixture
def publish(api_repository):
    def _publish(path: str, api_type: ApiType = ApiType.PUBLIC, status: ApiStatus = ApiStatus.ONLINE,
                 method: str = "GET", content: str = None) -> ApiDefinition:
        return api_repository.create(ApiDefinition(
            name=f"endpoint {path}",
            path=path,
            method=method,
            api_type=api_type,
            status=status,
            content=content or _greeting_flow(),
        ))
    return _publish


@pytest.mark.asyncio
async def test_health(app) -> None:
    async with _client(app) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["scheduler_running"] is False


class TestTaskEndpoints:
    """Tests de /api/v1/tasks."""

    @pytest.mark.asyncio
    async def test_create_and_get_use_camel_case(self, app) -> None:
        async with _client(app) as client:
            created = await client.post("/api/v1/tasks/", json={"name": "clientes", "cron": "0 3 * * *"})
            fetched = await client.get(f"/api/v1/tasks/{created.json()['id']}")

        assert created.status_code == 201
        body = fetched.json()
        assert body["name"] == "clientes"
        assert body["status"] == "DISABLED"
        assert body["type"] == "TASK"
        assert "parentId" in body
        assert "parent_id" not in body

    @pytest.mark.asyncio
    async def test_enabling_installs_trigger(self, app, container) -> None:
        async with _client(app) as client:
            created = await client.post("/api/v1/tasks/", json={"name": "clientes", "cron": "0 3 * * *"})
            task_id = created.json()["id"]
            assert not container.lifecycle.has_trigger(task_id)

            updated = await client.put(f"/api/v1/tasks/{task_id}", json={"status": "ENABLED"})

        assert updated.status_code == 200
        assert updated.json()["status"] == "ENABLED"
        assert updated.json()["cron"] == "0 3 * * *"
        assert container.lifecycle.has_trigger(task_id)

    @pytest.mark.asyncio
    async def test_invalid_cron_is_rejected(self, app) -> None:
        async with _client(app) as client:
            response = await client.post("/api/v1/tasks/", json={"name": "x", "cron": "every day"})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_task_is_404(self, app) -> None:
        async with _client(app) as client:
            response = await client.get("/api/v1/tasks/999")

        assert response.status_code == 404
        assert response.json()["error"] == "ENTITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_delete_removes_trigger(self, app, container) -> None:
        async with _client(app) as client:
            created = await client.post(
                "/api/v1/tasks/", json={"name": "x", "cron": "0 3 * * *", "status": "ENABLED"}
            )
            task_id = created.json()["id"]
            assert container.lifecycle.has_trigger(task_id)

            deleted = await client.delete(f"/api/v1/tasks/{task_id}")
            missing = await client.get(f"/api/v1/tasks/{task_id}")

        assert deleted.status_code == 204
        assert missing.status_code == 404
        assert not container.lifecycle.has_trigger(task_id)

    @pytest.mark.asyncio
    async def test_folder_with_children_cannot_be_deleted(self, app) -> None:
        async with _client(app) as client:
            folder = await client.post("/api/v1/tasks/", json={"name": "carpeta", "type": "FOLDER"})
            await client.post("/api/v1/tasks/", json={"name": "hija", "parentId": folder.json()["id"]})

            response = await client.delete(f"/api/v1/tasks/{folder.json()['id']}")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_copy_is_disabled(self, app) -> None:
        async with _client(app) as client:
            created = await client.post(
                "/api/v1/tasks/", json={"name": "x", "cron": "0 3 * * *", "status": "ENABLED"}
            )
            copied = await client.post(f"/api/v1/tasks/{created.json()['id']}/copy")

        assert copied.status_code == 201
        assert copied.json()["name"] == "x_copy"
        assert copied.json()["status"] == "DISABLED"

    @pytest.mark.asyncio
    async def test_execute_returns_run_id_and_log(self, app, container, make_sync_flow, source_engine) -> None:
        create_users_table(source_engine, users(4))
        async with _client(app) as client:
            created = await client.post("/api/v1/tasks/", json={"name": "copia", "content": make_sync_flow()})
            task_id = created.json()["id"]

            started = await client.post(f"/api/v1/tasks/{task_id}/execute")
            container.lifecycle.wait_for_task(task_id, timeout=30)
            latest = await client.get(f"/api/v1/tasks/{task_id}/latest-log")
            page = await client.get("/api/v1/logs/", params={"taskId": task_id})

        assert started.status_code == 202
        assert started.json()["taskId"] == task_id
        run_id = started.json()["runId"]
        assert latest.json()["id"] == run_id
        assert latest.json()["status"] == "SUCCESS"
        assert latest.json()["processedCount"] == 4
        assert page.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_execute_folder_is_rejected(self, app) -> None:
        async with _client(app) as client:
            folder = await client.post("/api/v1/tasks/", json={"name": "carpeta", "type": "FOLDER"})
            response = await client.post(f"/api/v1/tasks/{folder.json()['id']}/execute")

        assert response.status_code == 400
        assert response.json()["error"] == "FOLDER_NOT_EXECUTABLE"

    @pytest.mark.asyncio
    async def test_execute_while_running_is_conflict(self, app, container) -> None:
        async with _client(app) as client:
            created = await client.post("/api/v1/tasks/", json={"name": "x"})
            task_id = created.json()["id"]
            assert container.lifecycle._claim(task_id)
            try:
                response = await client.post(f"/api/v1/tasks/{task_id}/execute")
            finally:
                container.lifecycle._release(task_id)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_cron_preview(self, app) -> None:
        async with _client(app) as client:
            response = await client.get(
                "/api/v1/tasks/cron/next-executions", params={"cron": "0 0/5 * * * ?", "count": 3}
            )

        assert response.status_code == 200
        assert len(response.json()["nextExecutions"]) == 3


class TestExecEndpoints:
    """Tests de /api/exec/<path>."""

    @pytest.mark.asyncio
    async def test_public_online_endpoint(self, app, publish) -> None:
        publish("/saludo")

        async with _client(app) as client:
            response = await client.get("/api/exec/saludo", params={"name": "ana"})

        assert response.status_code == 200
        assert response.json() == {"greeting": "hola ana"}

    @pytest.mark.asyncio
    async def test_json_body_is_merged_into_params(self, app, publish) -> None:
        publish("/saludo", method="POST")

        async with _client(app) as client:
            response = await client.post("/api/exec/saludo", json={"name": "luis"})

        assert response.json() == {"greeting": "hola luis"}

    @pytest.mark.asyncio
    async def test_unknown_path(self, app) -> None:
        async with _client(app) as client:
            response = await client.get("/api/exec/nada")

        assert response.status_code == 404
        assert response.json() == {"code": 404, "message": "API not found: GET /nada"}

    @pytest.mark.asyncio
    async def test_offline_endpoint(self, app, publish) -> None:
        publish("/saludo", status=ApiStatus.OFFLINE)

        async with _client(app) as client:
            response = await client.get("/api/exec/saludo", params={"name": "ana"})

        assert response.status_code == 503
        assert response.json()["message"] == "API is offline"

    @pytest.mark.asyncio
    async def test_private_endpoint_requires_bearer(self, app, publish) -> None:
        publish("/privado", api_type=ApiType.PRIVATE)

        async with _client(app) as client:
            denied = await client.get("/api/exec/privado", params={"name": "ana"})
            allowed = await client.get(
                "/api/exec/privado", params={"name": "ana"}, headers={"Authorization": "Bearer abc"}
            )

        assert denied.status_code == 401
        assert denied.json()["code"] == 401
        assert allowed.status_code == 200

    @pytest.mark.asyncio
    async def test_flow_failure_is_500(self, app, publish) -> None:
        publish("/roto", content=_failing_flow())

        async with _client(app) as client:
            response = await client.get("/api/exec/roto")

        assert response.status_code == 500
        assert response.json()["message"].startswith("Execution failed")


class TestApiDefinitionEndpoints:
    """Tests de /api/v1/api-definitions."""

    @pytest.mark.asyncio
    async def test_create_debug_and_docs(self, app) -> None:
        payload = {
            "name": "Saludo",
            "path": "saludo",
            "method": "get",
            "apiType": "PUBLIC",
            "content": _greeting_flow(),
            "responseExample": '{"greeting": "hola ana"}',
        }
        async with _client(app) as client:
            created = await client.post("/api/v1/api-definitions/", json=payload)
            api_id = created.json()["id"]
            debug = await client.post(f"/api/v1/api-definitions/{api_id}/debug", json={"params": {"name": "eva"}})
            docs = await client.get(f"/api/v1/api-definitions/{api_id}/docs")

        assert created.status_code == 201
        assert created.json()["path"] == "/saludo"
        assert created.json()["method"] == "GET"
        assert created.json()["status"] == "DRAFT"
        assert debug.json() == {"greeting": "hola eva"}
        operation = docs.json()["paths"]["/api/exec/saludo"]["get"]
        assert operation["responses"]["200"]["content"]["application/json"]["schema"]["example"] == {
            "greeting": "hola ana"
        }

    @pytest.mark.asyncio
    async def test_duplicate_route_is_rejected(self, app) -> None:
        payload = {"name": "a", "path": "/dup", "content": _greeting_flow()}
        async with _client(app) as client:
            await client.post("/api/v1/api-definitions/", json=payload)
            response = await client.post("/api/v1/api-definitions/", json=payload)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_debug_failure_is_500(self, app) -> None:
        async with _client(app) as client:
            created = await client.post(
                "/api/v1/api-definitions/", json={"name": "roto", "path": "/roto", "content": _failing_flow()}
            )
            response = await client.post(f"/api/v1/api-definitions/{created.json()['id']}/debug", json={})

        assert response.status_code == 500
        assert response.json()["code"] == 500


class TestMonitorAndConfig:
    """Tests de /api/v1/monitor y /api/v1/config."""

    @pytest.mark.asyncio
    async def test_stats_shape(self, app) -> None:
        async with _client(app) as client:
            await client.post("/api/v1/tasks/", json={"name": "x"})
            await client.post("/api/v1/tasks/", json={"name": "carpeta", "type": "FOLDER"})
            response = await client.get("/api/v1/monitor/stats")

        body = response.json()
        assert response.status_code == 200
        assert body["totalTasks"] == 1
        assert len(body["trend"]) == 7
        assert body["todayTotal"] == 0
        assert "workerPool" in body

    @pytest.mark.asyncio
    async def test_task_progress(self, app) -> None:
        async with _client(app) as client:
            await client.post("/api/v1/tasks/", json={"name": "x", "cron": "0 3 * * *"})
            response = await client.get("/api/v1/monitor/tasks")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "x"
        assert response.json()[0]["lastResult"] is None

    @pytest.mark.asyncio
    async def test_config_roundtrip(self, app) -> None:
        async with _client(app) as client:
            updated = await client.put("/api/v1/config/sync.batchSize", json={"value": "500"})
            all_config = await client.get("/api/v1/config/")

        assert updated.json() == {"key": "sync.batchSize", "value": "500"}
        assert all_config.json()["sync.batchSize"] == "500"
