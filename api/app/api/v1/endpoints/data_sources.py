"""
Endpoints del directorio de conexiones.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.dependencies.use_case_deps import get_data_source_use_cases
from app.application.dto.data_source_dto import (
    DataSourceCreateDTO,
    DataSourceResponseDTO,
    DataSourceTestResultDTO,
    DataSourceUpdateDTO,
    SqlPreviewDTO,
    SqlRequestDTO,
)
from app.application.use_cases.data_source_use_cases import DataSourceUseCases


router = APIRouter(prefix="/data-sources", tags=["Data Sources"])


@router.post(
    "/",
    response_model=DataSourceResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar una conexion"
)
def create_data_source(
    dto: DataSourceCreateDTO,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> DataSourceResponseDTO:
    return use_cases.create(dto)


@router.get("/", response_model=List[DataSourceResponseDTO], summary="Listar conexiones")
def list_data_sources(
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> List[DataSourceResponseDTO]:
    return use_cases.list_data_sources()


@router.post("/test", response_model=DataSourceTestResultDTO, summary="Probar una conexion")
def test_data_source(
    dto: DataSourceCreateDTO,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> DataSourceTestResultDTO:
    """
    Abre una conexion efimera con los datos enviados y ejecuta `SELECT 1`.
    No registra la conexion.
    """
    return use_cases.test(dto)


@router.get("/{data_source_id}", response_model=DataSourceResponseDTO, summary="Obtener una conexion")
def get_data_source(
    data_source_id: int,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> DataSourceResponseDTO:
    return use_cases.get(data_source_id)


@router.put("/{data_source_id}", response_model=DataSourceResponseDTO, summary="Actualizar una conexion")
def update_data_source(
    data_source_id: int,
    dto: DataSourceUpdateDTO,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> DataSourceResponseDTO:
    return use_cases.update(data_source_id, dto)


@router.delete("/{data_source_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Eliminar una conexion")
def delete_data_source(
    data_source_id: int,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> None:
    use_cases.delete(data_source_id)


@router.post("/{data_source_id}/preview", response_model=SqlPreviewDTO, summary="Vista previa de un SQL")
def preview_sql(
    data_source_id: int,
    dto: SqlRequestDTO,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> SqlPreviewDTO:
    return SqlPreviewDTO(rows=use_cases.preview(data_source_id, dto.sql))


@router.post("/{data_source_id}/columns", response_model=List[str], summary="Columnas de un SQL")
def sql_columns(
    data_source_id: int,
    dto: SqlRequestDTO,
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> List[str]:
    return use_cases.sql_columns(data_source_id, dto.sql)


@router.get("/{data_source_id}/table-columns", summary="Columnas de una tabla")
def table_columns(
    data_source_id: int,
    table_name: str = Query(..., alias="tableName", min_length=1),
    use_cases: DataSourceUseCases = Depends(get_data_source_use_cases)
) -> List[Dict[str, Any]]:
    return use_cases.table_columns(data_source_id, table_name)
