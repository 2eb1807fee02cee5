"""
Casos de uso de fuentes de datos.
"""
from dataclasses import replace
from typing import Any, Dict, List

from loguru import logger

from app.application.dto.data_source_dto import (
    DataSourceCreateDTO,
    DataSourceResponseDTO,
    DataSourceTestResultDTO,
    DataSourceUpdateDTO,
)
from app.domain.entities.data_source import DataSourceDescriptor
from app.domain.repositories.data_source_repository import IDataSourceRepository
from app.infrastructure.connections.connection_directory import ConnectionDirectory
from app.shared.exceptions.domain import EntityNotFoundException


class DataSourceUseCases:
    """CRUD de conexiones y utilidades de inspeccion (test, preview, columnas)."""

    def __init__(self, data_source_repository: IDataSourceRepository, connections: ConnectionDirectory):
        self.data_source_repository = data_source_repository
        self.connections = connections

    def create(self, dto: DataSourceCreateDTO) -> DataSourceResponseDTO:
        descriptor = DataSourceDescriptor(id=None, **dto.model_dump())
        created = self.data_source_repository.create(descriptor)
        logger.info(f"Fuente de datos {created.id} ({created.name}) registrada")
        return DataSourceResponseDTO.model_validate(created)

    def get(self, data_source_id: int) -> DataSourceResponseDTO:
        return DataSourceResponseDTO.model_validate(self._get_or_raise(data_source_id))

    def list_data_sources(self) -> List[DataSourceResponseDTO]:
        return [DataSourceResponseDTO.model_validate(d) for d in self.data_source_repository.get_all()]

    def update(self, data_source_id: int, dto: DataSourceUpdateDTO) -> DataSourceResponseDTO:
        current = self._get_or_raise(data_source_id)
        updated = replace(current, **dto.model_dump(exclude_unset=True))
        return DataSourceResponseDTO.model_validate(self.data_source_repository.update(updated))

    def delete(self, data_source_id: int) -> bool:
        self._get_or_raise(data_source_id)
        return self.data_source_repository.delete(data_source_id)

    def test(self, dto: DataSourceCreateDTO) -> DataSourceTestResultDTO:
        """Prueba una conexion sin registrarla."""
        ok = self.connections.test_connection(DataSourceDescriptor(id=None, **dto.model_dump()))
        return DataSourceTestResultDTO(
            success=ok,
            message="Connection successful" if ok else "Connection failed",
        )

    def preview(self, data_source_id: int, sql: str) -> List[Dict[str, Any]]:
        return self.connections.preview_sql(data_source_id, sql)

    def sql_columns(self, data_source_id: int, sql: str) -> List[str]:
        return self.connections.get_columns(data_source_id, sql)

    def table_columns(self, data_source_id: int, table_name: str) -> List[Dict[str, Any]]:
        return self.connections.get_table_columns(data_source_id, table_name)

    def _get_or_raise(self, data_source_id: int) -> DataSourceDescriptor:
        descriptor = self.data_source_repository.get_by_id(data_source_id)
        if descriptor is None:
            raise EntityNotFoundException("DataSource", data_source_id)
        return descriptor
