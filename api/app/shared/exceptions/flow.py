"""
Excepciones del interprete de flujos de endpoints.
"""
from typing import Any, Optional

from app.shared.exceptions.base import AppException


class FlowExecutionError(AppException):
    """Fallo de cualquier nodo durante la ejecucion de un flujo."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        self.original = original
        super().__init__(
            message=f"Execution failed: {message}",
            status_code=500,
            error_code="FLOW_EXECUTION_FAILED",
        )


class ScriptError(AppException):
    """Error al evaluar el script de un nodo SCRIPT."""

    def __init__(self, message: str):
        super().__init__(
            message=f"Script execution failed: {message}",
            status_code=500,
            error_code="SCRIPT_ERROR",
        )


class AuthError(AppException):
    """El flujo exige una credencial bearer y no se proporciono."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, status_code=401, error_code="AUTH_REQUIRED")


class ApiNotFoundError(AppException):
    """No existe un endpoint publicado para el path y metodo indicados."""

    def __init__(self, method: str, path: str):
        super().__init__(
            message=f"API not found: {method} {path}",
            status_code=404,
            error_code="API_NOT_FOUND",
            details={"method": method, "path": path},
        )


class ApiOfflineError(AppException):
    """El endpoint existe pero no esta publicado."""

    def __init__(self, api_id: Any):
        super().__init__(
            message="API is offline",
            status_code=503,
            error_code="API_OFFLINE",
            details={"api_id": str(api_id)},
        )
