"""
Repositorio para gestionar configuraciones del sistema (clave/valor).
"""
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.infrastructure.database.models import SystemConfigModel


# Valores por defecto que se crean al arrancar si no existen
DEFAULT_SYSTEM_CONFIG = {
    "ops.export.path": ("exports", "Ruta de exportacion", "Directorio donde se escriben las exportaciones de tablas"),
}


class SystemConfigRepository:
    """
    Gestiona la tabla system_config.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_value(self, key: str, default: Any = None) -> Any:
        """
        Obtiene el valor de una configuracion por su clave.
        """
        with self._session_factory() as session:
            config = session.get(SystemConfigModel, key)
            if config is None or config.value is None:
                return default
            return config.value

    def get_all(self) -> Dict[str, Any]:
        """
        Obtiene todas las configuraciones como un diccionario.
        """
        with self._session_factory() as session:
            rows = session.execute(select(SystemConfigModel)).scalars().all()
            return {r.key: r.value for r in rows}

    def set_value(self, key: str, value: Any, name: Optional[str] = None, description: Optional[str] = None) -> bool:
        """
        Crea o actualiza una configuracion.
        """
        with self._session_factory.begin() as session:
            existing = session.get(SystemConfigModel, key)
            if existing:
                existing.value = None if value is None else str(value)
                if name:
                    existing.name = name
                if description:
                    existing.description = description
            else:
                session.add(SystemConfigModel(
                    key=key,
                    value=None if value is None else str(value),
                    name=name,
                    description=description,
                ))

        logger.info(f"Configuracion '{key}' actualizada a: {value}")
        return True

    def seed_defaults(self) -> int:
        """Crea las claves por defecto que falten. Retorna cuantas se crearon."""
        created = 0
        with self._session_factory.begin() as session:
            for key, (value, name, description) in DEFAULT_SYSTEM_CONFIG.items():
                if session.get(SystemConfigModel, key) is None:
                    session.add(SystemConfigModel(key=key, value=value, name=name, description=description))
                    created += 1
        if created:
            logger.info(f"Configuracion del sistema: {created} claves por defecto creadas")
        return created
