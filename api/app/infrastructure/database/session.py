"""
Gestión de sesiones de base de datos (metadatos del motor).

El motor de sincronizacion trabaja con hilos (workers por batch, scheduler),
por lo que se usa el engine sincrono de SQLAlchemy. Los repositorios reciben
la session factory y abren una unidad de trabajo corta por operacion.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings


# Base para modelos de SQLAlchemy
Base = declarative_base()


def _create_engine_args(url: str) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    PostgreSQL usa pool de conexiones, SQLite no lo soporta.
    """
    args = {
        "echo": settings.DEBUG,
        "future": True,
    }
    
    # Configuracion de pool solo para PostgreSQL
    if "postgresql" in url:
        args.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })
    elif url.startswith("sqlite"):
        # Los workers comparten la base de metadatos desde varios hilos
        args["connect_args"] = {"check_same_thread": False}
    
    return args


def build_engine(url: str) -> Engine:
    """Crea un engine para la URL indicada con los argumentos por dialecto."""
    return create_engine(url, **_create_engine_args(url))


def build_session_factory(bind: Engine) -> sessionmaker:
    """Crea una session factory ligada al engine."""
    return sessionmaker(
        bind=bind,
        class_=Session,
        expire_on_commit=False,
        autoflush=False
    )


# Engine de base de datos
engine = build_engine(settings.effective_database_url)

# Session factory
SessionLocal = build_session_factory(engine)


def get_session_factory() -> sessionmaker:
    """
    Retorna la session factory global.
    Para usar como dependencia en FastAPI (sobrescribible en tests).
    
    Returns:
        sessionmaker: Factory de sesiones de metadatos
    """
    return SessionLocal


def init_db(bind: Engine = None) -> None:
    """Inicializa la base de datos creando todas las tablas."""
    # Registrar modelos antes de create_all
    from app.infrastructure.database import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def close_db() -> None:
    """Cierra las conexiones de la base de datos."""
    engine.dispose()
