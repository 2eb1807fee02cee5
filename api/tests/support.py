"""
Utilidades compartidas por los tests que trabajan con archivos SQLite.
"""
from typing import Any, Dict, Iterable, List

from sqlalchemy import text
from sqlalchemy.engine import Engine


def enable_wal(engine: Engine) -> None:
    """WAL permite leer el origen mientras otro hilo escribe en el mismo archivo."""
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")


def create_users_table(engine: Engine, rows: Iterable[Dict[str, Any]], table: str = "src_users") -> None:
    """Crea (o recrea) la tabla de usuarios de origen con las filas indicadas."""
    rows = list(rows)
    with engine.begin() as conn:
        conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
        conn.execute(text(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)"))
        if rows:
            conn.execute(text(f"INSERT INTO {table} (id, name, age) VALUES (:id, :name, :age)"), rows)


def fetch_all(engine: Engine, sql: str) -> List[Dict[str, Any]]:
    with engine.connect() as conn:
        return [dict(r) for r in conn.execute(text(sql)).mappings()]


def users(count: int, prefix: str = "user") -> List[Dict[str, Any]]:
    return [{"id": i, "name": f"{prefix}-{i}", "age": 20 + i} for i in range(1, count + 1)]
