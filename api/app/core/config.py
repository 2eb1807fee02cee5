"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Configuracion del motor de sincronizacion:
    - SYNC_WORKER_POOL_SIZE / SYNC_WORKER_QUEUE_SIZE: pool acotado de workers
      por batch. Cuando la cola se llena, el hilo que extrae ejecuta el batch.
    - SYNC_RETRY_*: reintentos ante lock wait / deadlock en escrituras
    - DATABASE_URL se puede especificar completa o por componentes
      (es la base de metadatos: tareas, ejecuciones, endpoints)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Data Sync Engine")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos de metadatos - Componentes separados
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="datasync_user")
    DATABASE_PASSWORD: str = Field(default="datasync_pass")
    DATABASE_NAME: str = Field(default="datasync_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Seguridad
    SECRET_KEY: str = Field(default="change-this-secret-key-in-production")

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    # Motor de sincronizacion
    SYNC_WORKER_POOL_SIZE: int = Field(default=5)
    SYNC_WORKER_QUEUE_SIZE: int = Field(default=100)
    SYNC_DEFAULT_BATCH_SIZE: int = Field(default=1000)
    SYNC_RETRY_MAX_ATTEMPTS: int = Field(default=5)
    # Espera tras el primer fallo; se duplica en cada intento
    SYNC_RETRY_BASE_SECONDS: float = Field(default=2.0)
    SYNC_RETRY_MAX_JITTER_SECONDS: float = Field(default=1.0)
    SYNC_TRUNCATE_LOCK_TIMEOUT_SECONDS: int = Field(default=60)
    SYNC_WORKER_LOCK_TIMEOUT_SECONDS: int = Field(default=120)

    # Scheduler (cron)
    SCHEDULER_ENABLED: bool = Field(default=True)
    SCHEDULER_TIMEZONE: str = Field(default="UTC")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuración
settings = Settings()
