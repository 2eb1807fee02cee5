"""
Transformaciones puras aplicadas por los workers a cada batch.

1. `apply_mappings`: cadena ordenada de nodos de mapeo (renombrar/seleccionar).
2. `project_rows`: proyeccion sobre los campos declarados del destino, con
   coercion de tipos best-effort.

El orden de las filas dentro del batch se conserva.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Sequence

from loguru import logger

from app.domain.entities.sync_task import MappingConfig, TargetField
from app.infrastructure.sync.types import Row

_TRUTHY = ("true", "1", "yes")


def apply_mappings(rows: List[Row], stages: Sequence[MappingConfig]) -> List[Row]:
    """
    Aplica las etapas de mapeo en orden.

    Cada etapa produce filas nuevas solo con los campos mapeados; un campo
    ausente en la fila anterior se descarta. Una etapa sin mapeos deja pasar
    las filas sin cambios.
    """
    current = rows
    for stage in stages:
        if not stage.mappings:
            continue
        next_rows: List[Row] = []
        for row in current:
            new_row: Row = {}
            for mapping in stage.mappings:
                if mapping.source in row:
                    new_row[mapping.effective_target] = row[mapping.source]
            next_rows.append(new_row)
        current = next_rows
    return current


def project_rows(rows: Iterable[Row], fields: Sequence[TargetField]) -> List[Row]:
    """
    Proyecta cada fila sobre los campos destino.

    El valor se busca por `sourceName` y, si no se configuro, por el nombre
    del campo destino. Los campos sin valor quedan en None.
    """
    projected: List[Row] = []
    for row in rows:
        projected.append({f.name: coerce_value(row.get(f.lookup_name), f.type) for f in fields})
    return projected


def coerce_value(value: Any, target_type: str) -> Any:
    """
    Convierte el valor al tipo destino (best-effort).

    Nunca falla: si la conversion no es posible se registra y se devuelve el
    valor original.
    """
    if value is None or not target_type:
        return value

    type_upper = target_type.upper()
    try:
        if "INT" in type_upper:
            if isinstance(value, (int, float, Decimal)):
                return int(value)
            return int(str(value).strip())
        if "DECIMAL" in type_upper or "DOUBLE" in type_upper or "FLOAT" in type_upper:
            if isinstance(value, (int, float, Decimal)):
                return float(value)
            return float(str(value).strip())
        if "DATETIME" in type_upper or "TIMESTAMP" in type_upper or "DATE" in type_upper or "TIME" in type_upper:
            return value
        if "BOOLEAN" in type_upper:
            if isinstance(value, bool):
                return value
            return str(value).strip().lower() in _TRUTHY
        # JSON y texto pasan tal cual
    except (TypeError, ValueError, ArithmeticError) as e:
        logger.warning(f"No se pudo convertir '{value}' a {target_type}: {e}")
    return value
