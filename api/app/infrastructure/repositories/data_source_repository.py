"""
Implementacion del repositorio de conexiones registradas (tabla data_source).
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.domain.entities.data_source import DataSourceDescriptor
from app.domain.repositories.data_source_repository import IDataSourceRepository
from app.infrastructure.database.models import DataSourceModel
from app.shared.exceptions.domain import EntityNotFoundException


class DataSourceRepository(IDataSourceRepository):
    """Repositorio de DataSourceDescriptor."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, descriptor: DataSourceDescriptor) -> DataSourceDescriptor:
        with self._session_factory.begin() as session:
            db_ds = DataSourceModel()
            self._apply(db_ds, descriptor)
            session.add(db_ds)
            session.flush()
            return self._to_entity(db_ds)

    def get_by_id(self, data_source_id: int) -> Optional[DataSourceDescriptor]:
        with self._session_factory() as session:
            db_ds = session.get(DataSourceModel, data_source_id)
            return self._to_entity(db_ds) if db_ds else None

    def get_all(self) -> List[DataSourceDescriptor]:
        with self._session_factory() as session:
            rows = session.execute(select(DataSourceModel).order_by(DataSourceModel.id)).scalars().all()
            return [self._to_entity(r) for r in rows]

    def update(self, descriptor: DataSourceDescriptor) -> DataSourceDescriptor:
        with self._session_factory.begin() as session:
            db_ds = session.get(DataSourceModel, descriptor.id)
            if db_ds is None:
                raise EntityNotFoundException("DataSource", descriptor.id)
            self._apply(db_ds, descriptor)
            session.flush()
            return self._to_entity(db_ds)

    def delete(self, data_source_id: int) -> bool:
        with self._session_factory.begin() as session:
            db_ds = session.get(DataSourceModel, data_source_id)
            if db_ds is None:
                return False
            session.delete(db_ds)
            return True

    @staticmethod
    def _apply(db_ds: DataSourceModel, descriptor: DataSourceDescriptor) -> None:
        db_ds.name = descriptor.name
        db_ds.type = descriptor.kind.upper()
        db_ds.host = descriptor.host
        db_ds.port = descriptor.port
        db_ds.database_name = descriptor.database
        db_ds.username = descriptor.username
        db_ds.password = descriptor.password

    @staticmethod
    def _to_entity(db_ds: DataSourceModel) -> DataSourceDescriptor:
        return DataSourceDescriptor(
            id=db_ds.id,
            name=db_ds.name,
            kind=db_ds.type,
            host=db_ds.host,
            port=db_ds.port,
            database=db_ds.database_name,
            username=db_ds.username,
            password=db_ds.password,
        )
