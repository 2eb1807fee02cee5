"""
Tipos de datos del pipeline de sincronizacion.

Se mantienen libres de I/O para poder testearlos facilmente.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

Row = Dict[str, Any]


@dataclass(frozen=True)
class Batch:
    """Filas extraidas del cursor de origen, como mucho `batch_size`."""

    number: int
    rows: List[Row] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class BatchReport:
    """Tiempos de un batch procesado (en milisegundos)."""

    number: int
    size: int
    mapping_ms: int = 0
    load_ms: int = 0
    delete_ms: int = 0

    @property
    def total_ms(self) -> int:
        return self.mapping_ms + self.load_ms + self.delete_ms
