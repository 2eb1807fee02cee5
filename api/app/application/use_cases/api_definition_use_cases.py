"""
Casos de uso de endpoints definidos como flujo.
"""
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from app.application.dto.api_definition_dto import (
    ApiDefinitionCreateDTO,
    ApiDefinitionResponseDTO,
    ApiDefinitionUpdateDTO,
)
from app.application.services.api_execution_service import ApiExecutionService
from app.domain.entities.api_definition import ApiDefinition
from app.domain.repositories.api_definition_repository import IApiDefinitionRepository
from app.shared.exceptions.domain import EntityNotFoundException, ValidationException


class ApiDefinitionUseCases:
    """CRUD, depuracion y documentacion de endpoints."""

    def __init__(self, api_repository: IApiDefinitionRepository, execution_service: ApiExecutionService):
        self.api_repository = api_repository
        self.execution_service = execution_service

    def create(self, dto: ApiDefinitionCreateDTO) -> ApiDefinitionResponseDTO:
        definition = ApiDefinition(**dto.model_dump())
        self._ensure_unique_route(definition)
        created = self.api_repository.create(definition)
        logger.info(f"Endpoint {created.method} {created.path} creado ({created.id})")
        return ApiDefinitionResponseDTO.model_validate(created)

    def get(self, api_id: str) -> ApiDefinitionResponseDTO:
        return ApiDefinitionResponseDTO.model_validate(self._get_or_raise(api_id))

    def list_definitions(self) -> List[ApiDefinitionResponseDTO]:
        return [ApiDefinitionResponseDTO.model_validate(d) for d in self.api_repository.get_all()]

    def update(self, api_id: str, dto: ApiDefinitionUpdateDTO) -> ApiDefinitionResponseDTO:
        definition = self._get_or_raise(api_id)
        for name, value in dto.model_dump(exclude_unset=True).items():
            setattr(definition, name, value)
        definition.normalize()
        self._ensure_unique_route(definition)
        return ApiDefinitionResponseDTO.model_validate(self.api_repository.update(definition))

    def delete(self, api_id: str) -> bool:
        self._get_or_raise(api_id)
        return self.api_repository.delete(api_id)

    def debug(self, api_id: str, params: Optional[Dict[str, Any]] = None,
              headers: Optional[Mapping[str, str]] = None) -> Any:
        return self.execution_service.debug_execute(self._get_or_raise(api_id), params, headers)

    def docs(self, api_id: str) -> Dict[str, Any]:
        return self.execution_service.docs(self._get_or_raise(api_id))

    def _get_or_raise(self, api_id: str) -> ApiDefinition:
        definition = self.api_repository.get_by_id(api_id)
        if definition is None:
            raise EntityNotFoundException("ApiDefinition", api_id)
        return definition

    def _ensure_unique_route(self, definition: ApiDefinition) -> None:
        existing = self.api_repository.find_by_path_and_method(definition.path, definition.method)
        if existing is not None and existing.id != definition.id:
            raise ValidationException(
                f"Ya existe un endpoint {definition.method} {definition.path}", field="path"
            )
