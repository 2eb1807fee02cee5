"""
Endpoints de configuracion del sistema.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.v1.dependencies.use_case_deps import get_system_config_use_cases
from app.application.dto.system_config_dto import SystemConfigUpdateDTO
from app.application.use_cases.system_config_use_cases import SystemConfigUseCases


router = APIRouter(prefix="/config", tags=["System Config"])


@router.get("/", summary="Listar configuracion")
def get_all_config(
    use_cases: SystemConfigUseCases = Depends(get_system_config_use_cases)
) -> Dict[str, Any]:
    return use_cases.get_all()


@router.put("/{key}", summary="Actualizar una clave de configuracion")
def set_config_value(
    key: str,
    dto: SystemConfigUpdateDTO,
    use_cases: SystemConfigUseCases = Depends(get_system_config_use_cases)
) -> Dict[str, Any]:
    return use_cases.set_value(key, dto)
