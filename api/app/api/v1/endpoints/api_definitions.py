"""
Endpoints de administracion de endpoints definidos como flujo.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.api.v1.dependencies.use_case_deps import get_api_definition_use_cases
from app.application.dto.api_definition_dto import (
    ApiDebugRequestDTO,
    ApiDefinitionCreateDTO,
    ApiDefinitionResponseDTO,
    ApiDefinitionUpdateDTO,
)
from app.application.use_cases.api_definition_use_cases import ApiDefinitionUseCases
from app.shared.exceptions.flow import FlowExecutionError


router = APIRouter(prefix="/api-definitions", tags=["API Definitions"])


@router.post(
    "/",
    response_model=ApiDefinitionResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Crear un endpoint"
)
def create_definition(
    dto: ApiDefinitionCreateDTO,
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> ApiDefinitionResponseDTO:
    return use_cases.create(dto)


@router.get("/", response_model=List[ApiDefinitionResponseDTO], summary="Listar endpoints")
def list_definitions(
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> List[ApiDefinitionResponseDTO]:
    return use_cases.list_definitions()


@router.get("/{api_id}", response_model=ApiDefinitionResponseDTO, summary="Obtener un endpoint")
def get_definition(
    api_id: str,
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> ApiDefinitionResponseDTO:
    return use_cases.get(api_id)


@router.put("/{api_id}", response_model=ApiDefinitionResponseDTO, summary="Actualizar un endpoint")
def update_definition(
    api_id: str,
    dto: ApiDefinitionUpdateDTO,
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> ApiDefinitionResponseDTO:
    return use_cases.update(api_id, dto)


@router.delete("/{api_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Eliminar un endpoint")
def delete_definition(
    api_id: str,
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> None:
    use_cases.delete(api_id)


@router.post("/{api_id}/debug", summary="Ejecutar un endpoint sin publicarlo")
def debug_definition(
    api_id: str,
    dto: ApiDebugRequestDTO,
    request: Request,
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> Any:
    """
    Ejecuta el flujo ignorando estado y tipo de acceso.
    Un fallo del flujo se responde como `{"code": 500, "message": ...}`.
    """
    try:
        result = use_cases.debug(api_id, dto.params, request.headers)
    except FlowExecutionError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_exec_response())
    return JSONResponse(content=jsonable_encoder(result))


@router.get("/{api_id}/docs", summary="Documento OpenAPI del endpoint")
def get_definition_docs(
    api_id: str,
    use_cases: ApiDefinitionUseCases = Depends(get_api_definition_use_cases)
) -> Dict[str, Any]:
    return use_cases.docs(api_id)
