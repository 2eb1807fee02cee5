"""
Servicios de aplicacion.

Contiene la logica reutilizable que no pertenece a un caso de uso especifico.
"""
from app.application.services.api_execution_service import ApiExecutionService

__all__ = ["ApiExecutionService"]
