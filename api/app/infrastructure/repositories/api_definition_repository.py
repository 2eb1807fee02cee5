"""
Implementacion del repositorio de endpoints definidos como flujo.
"""
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.domain.entities.api_definition import ApiDefinition
from app.domain.repositories.api_definition_repository import IApiDefinitionRepository
from app.infrastructure.database.models import ApiDefinitionModel
from app.shared.constants.sync_constants import ApiStatus, ApiType
from app.shared.exceptions.domain import EntityNotFoundException


class ApiDefinitionRepository(IApiDefinitionRepository):
    """Repositorio de ApiDefinition sobre la tabla api_definition."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, definition: ApiDefinition) -> ApiDefinition:
        with self._session_factory.begin() as session:
            db_api = ApiDefinitionModel(id=definition.id or str(uuid.uuid4()))
            self._apply(db_api, definition)
            session.add(db_api)
            session.flush()
            session.refresh(db_api)
            return self._to_entity(db_api)

    def get_by_id(self, api_id: str) -> Optional[ApiDefinition]:
        with self._session_factory() as session:
            db_api = session.get(ApiDefinitionModel, api_id)
            return self._to_entity(db_api) if db_api else None

    def get_all(self) -> List[ApiDefinition]:
        with self._session_factory() as session:
            rows = session.execute(
                select(ApiDefinitionModel).order_by(ApiDefinitionModel.created_at.desc())
            ).scalars().all()
            return [self._to_entity(r) for r in rows]

    def find_by_path_and_method(self, path: str, method: str) -> Optional[ApiDefinition]:
        with self._session_factory() as session:
            db_api = session.execute(
                select(ApiDefinitionModel)
                .where(ApiDefinitionModel.path == path)
                .where(ApiDefinitionModel.method == method.upper())
                .limit(1)
            ).scalar_one_or_none()
            return self._to_entity(db_api) if db_api else None

    def update(self, definition: ApiDefinition) -> ApiDefinition:
        with self._session_factory.begin() as session:
            db_api = session.get(ApiDefinitionModel, definition.id)
            if db_api is None:
                raise EntityNotFoundException("ApiDefinition", definition.id)
            self._apply(db_api, definition)
            session.flush()
            session.refresh(db_api)
            return self._to_entity(db_api)

    def delete(self, api_id: str) -> bool:
        with self._session_factory.begin() as session:
            db_api = session.get(ApiDefinitionModel, api_id)
            if db_api is None:
                return False
            session.delete(db_api)
            return True

    @staticmethod
    def _apply(db_api: ApiDefinitionModel, definition: ApiDefinition) -> None:
        db_api.name = definition.name
        db_api.path = definition.path
        db_api.method = definition.method
        db_api.description = definition.description
        db_api.api_type = definition.api_type.value
        db_api.status = definition.status.value
        db_api.version = definition.version
        db_api.content = definition.content
        db_api.response_example = definition.response_example

    @staticmethod
    def _to_entity(db_api: ApiDefinitionModel) -> ApiDefinition:
        return ApiDefinition(
            id=db_api.id,
            name=db_api.name,
            path=db_api.path,
            method=db_api.method,
            description=db_api.description,
            api_type=ApiType(db_api.api_type),
            status=ApiStatus(db_api.status),
            version=db_api.version,
            content=db_api.content,
            response_example=db_api.response_example,
            created_at=db_api.created_at,
            updated_at=db_api.updated_at,
        )
