"""
Script para inicializar la base de metadatos.

Crea las tablas que falten y las claves de configuracion por defecto.
Para cambios de esquema posteriores usar alembic (`alembic upgrade head`).
"""
from loguru import logger

from app.infrastructure.database.session import SessionLocal, engine, init_db
from app.infrastructure.repositories.system_config_repository import SystemConfigRepository


def main() -> None:
    """Funcion principal para inicializar la base de datos."""
    logger.info(f"Inicializando base de metadatos en {engine.url.render_as_string(hide_password=True)}")

    try:
        init_db(engine)
        created = SystemConfigRepository(SessionLocal).seed_defaults()
        logger.success(f"Base de datos inicializada correctamente ({created} claves de configuracion creadas)")
    except Exception as e:
        logger.error(f"Error al inicializar base de datos: {e}")
        raise


if __name__ == "__main__":
    main()
