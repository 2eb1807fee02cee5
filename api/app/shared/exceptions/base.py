"""
Excepcion raiz del motor.

Cada subclase fija su status HTTP y un codigo de error estable; la capa API
solo traduce, nunca decide el status.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Error de aplicacion con status HTTP asociado.

    Args:
        message: texto legible, se devuelve tal cual al cliente
        status_code: status HTTP de la respuesta
        error_code: codigo estable para el cliente (p. ej. ENTITY_NOT_FOUND)
        details: datos adicionales serializables
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        """Cuerpo estandar de error de la API de administracion."""
        return {"error": self.error_code, "message": self.message, "details": self.details}

    def to_exec_response(self) -> Dict[str, Any]:
        """Cuerpo de error de los endpoints publicados (`/api/exec`)."""
        return {"code": self.status_code, "message": self.message}
