"""
Excepciones del pipeline de sincronizacion.

Taxonomia:
- SyncValidationError: definicion incompleta o invalida (falla antes de cualquier I/O)
- ConnectionResolutionError: conexion inexistente, no soportada o inalcanzable
- TransientWriteError: lock wait / deadlock que agoto los reintentos
- PermanentWriteError: cualquier otro fallo de escritura (sin reintento)
- SchemaReconciliationWarning: fallo al agregar PK (solo se registra en log)
"""
from typing import Any, Dict, Optional

from app.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base del motor de sincronizacion."""

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class SyncValidationError(SyncException):
    """La definicion de la tarea no cumple los requisitos minimos."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="SYNC_VALIDATION_ERROR",
            details={"field": field} if field else None,
            status_code=400,
        )


class ConnectionResolutionError(SyncException):
    """No se pudo resolver o abrir una conexion de origen/destino."""

    def __init__(self, message: str, data_source_id: Any = None):
        super().__init__(
            message=message,
            error_code="CONNECTION_ERROR",
            details={"data_source_id": str(data_source_id)} if data_source_id is not None else None,
        )


class TransientWriteError(SyncException):
    """Contencion de escritura (lock wait / deadlock) que no se resolvio con reintentos."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(
            message=message,
            error_code="TRANSIENT_WRITE_ERROR",
            details={"attempts": attempts},
        )


class PermanentWriteError(SyncException):
    """Fallo de escritura no recuperable."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="PERMANENT_WRITE_ERROR")


class TaskAlreadyRunningError(SyncException):
    """Ya existe una ejecucion en curso para la tarea."""

    def __init__(self, task_id: Any):
        self.task_id = task_id
        super().__init__(
            message=f"La tarea {task_id} ya se esta ejecutando",
            error_code="TASK_ALREADY_RUNNING",
            details={"task_id": str(task_id)},
            status_code=409,
        )


class SchemaReconciliationWarning(UserWarning):
    """No se pudo agregar la clave primaria a una tabla destino existente."""
