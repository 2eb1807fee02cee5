"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Text, JSON
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base


class DataSourceModel(Base):
    """
    Modelo de base de datos para conexiones relacionales registradas.
    Es el directorio de conexiones que resuelven los nodos de entrada/salida.
    """

    __tablename__ = "data_source"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    host = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False)
    database_name = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<DataSource(id={self.id}, name={self.name}, type={self.type})>"


class SyncTaskModel(Base):
    """
    Modelo de base de datos para definiciones de tareas de sincronizacion.
    El flujo (nodos y aristas) se guarda como JSON serializado en `content`.
    """

    __tablename__ = "sync_task"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="TASK")
    parent_id = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    cron = Column("cron_expression", String(120), nullable=True)
    content = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="DISABLED")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SyncTask(id={self.id}, name={self.name}, status={self.status})>"


class SyncLogModel(Base):
    """
    Modelo de base de datos para ejecuciones de sincronizacion (SyncRun).
    Se crea en estado RUNNING al iniciar y se finaliza una sola vez.
    """

    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, nullable=False, index=True)
    task_name = Column(String(255), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    result = Column(String(20), nullable=False, index=True)
    message = Column(Text, nullable=True)
    sync_count = Column(Integer, nullable=True)
    total_count = Column(Integer, nullable=True)
    processed_count = Column(Integer, nullable=True, default=0)
    duration_ms = Column(BigInteger, nullable=True)
    node_details = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<SyncLog(id={self.id}, task_id={self.task_id}, result={self.result})>"


class ApiDefinitionModel(Base):
    """Modelo de base de datos para endpoints invocables definidos como flujo."""

    __tablename__ = "api_definition"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    path = Column(String(500), nullable=False, index=True)
    method = Column(String(10), nullable=False, default="GET")
    description = Column(Text, nullable=True)
    api_type = Column(String(20), nullable=False, default="PRIVATE")
    status = Column(String(20), nullable=False, default="DRAFT")
    version = Column(String(20), nullable=False, default="v1")
    content = Column(Text, nullable=True)
    response_example = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ApiDefinition(id={self.id}, method={self.method}, path={self.path})>"


class SystemConfigModel(Base):
    """
    Modelo para configuraciones globales del sistema (clave/valor).
    """

    __tablename__ = "system_config"

    key = Column(String(255), primary_key=True, index=True)
    value = Column(Text, nullable=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SystemConfig(key={self.key}, value={self.value})>"
