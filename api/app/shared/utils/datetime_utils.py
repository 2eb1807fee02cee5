"""
Utilidades de fechas para los registros de ejecucion.

Todas las marcas de tiempo del motor se guardan y comparan en UTC.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""
    
    @staticmethod
    def now_utc() -> datetime:
        """Instante actual (aware, UTC)."""
        return datetime.now(timezone.utc)
    
    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza un datetime a UTC (aware).
        
        SQLite devuelve datetimes naive; los tratamos como UTC para
        poder comparar y calcular duraciones de forma consistente.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    
    @staticmethod
    def elapsed_ms(start: datetime, end: datetime) -> int:
        """Milisegundos transcurridos entre dos instantes."""
        delta = DateTimeUtils.ensure_utc(end) - DateTimeUtils.ensure_utc(start)
        return int(delta.total_seconds() * 1000)
    
    @staticmethod
    def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
        """
        Convierte un datetime a string ISO 8601.
        
        Args:
            dt: Objeto datetime
            
        Returns:
            str: Fecha en formato ISO 8601 (None si no hay fecha)
        """
        return dt.isoformat() if dt else None
