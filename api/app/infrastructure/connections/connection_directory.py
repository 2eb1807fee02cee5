"""
Directorio de conexiones relacionales (origen/destino de las tareas).

Resuelve el id de una conexion registrada a su descriptor y abre un Engine de
SQLAlchemy para ella. Los engines se cachean por id + parametros de conexion,
asi que editar una fuente genera un engine nuevo en la siguiente ejecucion.

Cada llamador obtiene su propia conexion (`engine.connect()`); las conexiones
nunca se comparten entre hilos.
"""
from __future__ import annotations

import re
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine, URL
from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities.data_source import DataSourceDescriptor
from app.shared.exceptions.sync import ConnectionResolutionError, SyncException


# Tipo de fuente -> driver de SQLAlchemy
SUPPORTED_DRIVERS = {
    "POSTGRESQL": "postgresql+psycopg",
}

PREVIEW_LIMIT = 10

_LIMIT_RE = re.compile(r"\blimit\b", re.IGNORECASE)


def has_limit_clause(sql: str) -> bool:
    """Indica si el SQL ya trae una clausula LIMIT."""
    return bool(_LIMIT_RE.search(sql or ""))


class ConnectionDirectory:
    """
    Resuelve y abre conexiones registradas en la tabla data_source.

    Args:
        lookup: Funcion `id -> DataSourceDescriptor | None` (normalmente
            `DataSourceRepository.get_by_id`)
    """

    def __init__(self, lookup: Callable[[int], Optional[DataSourceDescriptor]], pool_size: int = 5):
        self._lookup = lookup
        self._pool_size = pool_size
        self._engines: Dict[Tuple[Any, str], Engine] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Resolucion
    # ------------------------------------------------------------------

    def resolve(self, data_source_id: Any) -> DataSourceDescriptor:
        """
        Retorna el descriptor de la conexion.

        Raises:
            ConnectionResolutionError: si el id no es valido o no existe
        """
        try:
            key = int(data_source_id)
        except (TypeError, ValueError):
            raise ConnectionResolutionError("Data source not found", data_source_id=data_source_id)

        descriptor = self._lookup(key)
        if descriptor is None:
            raise ConnectionResolutionError("Data source not found", data_source_id=data_source_id)
        return descriptor

    def open_engine(self, descriptor: DataSourceDescriptor) -> Engine:
        """
        Retorna el Engine (cacheado) para el descriptor.

        Raises:
            ConnectionResolutionError: tipo de fuente no soportado
        """
        cache_key = (descriptor.id, descriptor.fingerprint)
        with self._lock:
            engine = self._engines.get(cache_key)
            if engine is not None:
                return engine

            url = self.build_url(descriptor)
            try:
                engine = create_engine(url, **self.engine_options(descriptor))
            except (SQLAlchemyError, ImportError) as e:
                raise ConnectionResolutionError(
                    f"Cannot open data source {descriptor.name}: {e}", data_source_id=descriptor.id
                )

            # Si la fuente cambio, el engine anterior ya no sirve
            stale = [k for k in self._engines if k[0] == descriptor.id]
            for k in stale:
                self._engines.pop(k).dispose()

            self._engines[cache_key] = engine
            logger.debug(f"Engine creado para data source {descriptor.id} ({descriptor.kind})")
            return engine

    def engine_for(self, data_source_id: Any) -> Engine:
        return self.open_engine(self.resolve(data_source_id))

    def build_url(self, descriptor: DataSourceDescriptor) -> URL:
        driver = SUPPORTED_DRIVERS.get((descriptor.kind or "").upper())
        if driver is None:
            raise ConnectionResolutionError(
                f"Unsupported data source type: {descriptor.kind}", data_source_id=descriptor.id
            )
        return URL.create(
            driver,
            username=descriptor.username,
            password=descriptor.password,
            host=descriptor.host,
            port=descriptor.port,
            database=descriptor.database,
        )

    def engine_options(self, descriptor: DataSourceDescriptor) -> Dict[str, Any]:
        return {
            "pool_size": self._pool_size,
            "max_overflow": self._pool_size,
            "pool_pre_ping": True,
            "future": True,
        }

    def dispose(self) -> None:
        """Cierra todos los engines abiertos."""
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()

    # ------------------------------------------------------------------
    # Utilidades sobre una fuente
    # ------------------------------------------------------------------

    def test_connection(self, descriptor: DataSourceDescriptor) -> bool:
        """Abre una conexion efimera (sin cache) y ejecuta SELECT 1."""
        try:
            engine = create_engine(self.build_url(descriptor), **self._probe_options(descriptor))
        except (ConnectionResolutionError, SQLAlchemyError, ImportError) as e:
            logger.warning(f"Test de conexion fallido para {descriptor.name}: {e}")
            return False
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Test de conexion fallido para {descriptor.name}: {e}")
            return False
        finally:
            engine.dispose()

    def preview_sql(self, data_source_id: Any, sql: str) -> List[Dict[str, Any]]:
        """Ejecuta el SQL con un LIMIT de vista previa (si no trae uno)."""
        preview = (sql or "").strip().rstrip(";")
        if not has_limit_clause(preview):
            preview += f" LIMIT {PREVIEW_LIMIT}"
        engine = self.engine_for(data_source_id)
        try:
            with engine.connect() as conn:
                return [dict(r) for r in conn.execute(text(preview)).mappings()]
        except SQLAlchemyError as e:
            raise SyncException(
                f"SQL preview failed: {e}", error_code="SQL_PREVIEW_FAILED", status_code=400
            )

    def get_columns(self, data_source_id: Any, sql: str) -> List[str]:
        """Columnas que produce un SQL, sin traer filas."""
        schema_sql = (sql or "").strip().rstrip(";")
        if not has_limit_clause(schema_sql):
            schema_sql += " LIMIT 0"
        engine = self.engine_for(data_source_id)
        try:
            with engine.connect() as conn:
                return list(conn.execute(text(schema_sql)).keys())
        except SQLAlchemyError as e:
            raise SyncException(
                f"Failed to get columns: {e}", error_code="COLUMNS_FAILED", status_code=400
            )

    def get_table_columns(self, data_source_id: Any, table_name: str) -> List[Dict[str, Any]]:
        """Columnas de una tabla: nombre, tipo, comentario y si es PK."""
        engine = self.engine_for(data_source_id)
        try:
            inspector = inspect(engine)
            pk_columns = set(inspector.get_pk_constraint(table_name).get("constrained_columns") or [])
            return [
                {
                    "name": col["name"],
                    "type": str(col["type"]),
                    "comment": col.get("comment"),
                    "isPk": col["name"] in pk_columns,
                }
                for col in inspector.get_columns(table_name)
            ]
        except SQLAlchemyError as e:
            raise SyncException(
                f"Failed to get table columns: {e}", error_code="COLUMNS_FAILED", status_code=400
            )

    def _probe_options(self, descriptor: DataSourceDescriptor) -> Dict[str, Any]:
        options = dict(self.engine_options(descriptor))
        options.pop("pool_size", None)
        options.pop("max_overflow", None)
        return options
