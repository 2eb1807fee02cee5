"""
Ejecucion de endpoints publicados: `/api/exec/<path>`.

Los parametros son la query string mas el cuerpo JSON (si es un objeto).
Cualquier fallo responde `{"code": <status>, "message": ...}`.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool

from app.api.v1.dependencies.use_case_deps import get_api_execution_service
from app.application.services.api_execution_service import ApiExecutionService
from app.shared.exceptions.base import AppException


router = APIRouter(prefix="/exec", tags=["Endpoint Execution"])


async def _collect_params(request: Request) -> Dict[str, Any]:
    params: Dict[str, Any] = dict(request.query_params)
    body = await request.body()
    if body:
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            params.update(payload)
    return params


@router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE"], summary="Ejecutar un endpoint")
async def execute_endpoint(
    path: str,
    request: Request,
    service: ApiExecutionService = Depends(get_api_execution_service),
) -> JSONResponse:
    params = await _collect_params(request)
    try:
        result = await run_in_threadpool(
            service.execute, "/" + path, request.method, params, dict(request.headers)
        )
    except AppException as e:
        logger.warning(f"Ejecucion de /{path} fallida: {e.message}")
        return JSONResponse(status_code=e.status_code, content=e.to_exec_response())
    return JSONResponse(content=jsonable_encoder(result))
