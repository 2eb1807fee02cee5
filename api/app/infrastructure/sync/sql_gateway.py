"""
Operaciones SQL del pipeline sobre las conexiones de origen y destino.

- Reconciliacion del esquema destino (crear tabla, agregar columnas y PK)
- Preambulo OVERWRITE (truncate bajo un lock timeout extendido)
- Carga por batch con estrategia de conflicto (UPSERT / IGNORE / INSERT)
- Borrado en origen de las filas ya sincronizadas
- Conteo estimado y lectura en streaming del SQL de origen

Los identificadores se citan con el preparer del dialecto; los valores siempre
viajan como parametros.
"""
from __future__ import annotations

import warnings
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from loguru import logger
from sqlalchemy import Column, MetaData, Table, inspect, text
from sqlalchemy import insert as sa_insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities.sync_task import OutputConfig, TargetField
from app.infrastructure.connections.connection_directory import has_limit_clause
from app.infrastructure.sync.types import Row
from app.shared.constants.sync_constants import ConflictStrategy, DEFAULT_FIELD_TYPE
from app.shared.exceptions.sync import SchemaReconciliationWarning


def sanitize_type(field_type: Optional[str]) -> str:
    """Normaliza el tipo declarado para usarlo en DDL."""
    if not field_type or not field_type.strip():
        return DEFAULT_FIELD_TYPE
    upper = field_type.strip().upper()
    if upper in ("VARCHAR", "STRING"):
        return DEFAULT_FIELD_TYPE
    if upper in ("INT", "INTEGER"):
        return "INTEGER"
    if upper in ("DATETIME", "TIMESTAMP"):
        return "TIMESTAMP"
    return field_type.strip()


def find_key_case_insensitive(row: Row, key: str) -> Any:
    """Valor de `key` en la fila, buscando sin distinguir mayusculas."""
    if key in row:
        return row[key]
    lowered = key.lower()
    for k, v in row.items():
        if k.lower() == lowered:
            return v
    return None


class SqlGateway:
    """
    Acceso SQL del pipeline.

    Args:
        truncate_lock_timeout: segundos de espera de locks para DDL y TRUNCATE
        worker_lock_timeout: segundos de espera de locks en cada carga de batch
    """

    def __init__(self, truncate_lock_timeout: int = 60, worker_lock_timeout: int = 120):
        self._truncate_lock_timeout = truncate_lock_timeout
        self._worker_lock_timeout = worker_lock_timeout
        # Tablas cuya PK no se pudo agregar: se cargan con insert simple.
        self._keyless_tables: Set[Tuple[str, str]] = set()

    # ------------------------------------------------------------------
    # Esquema destino
    # ------------------------------------------------------------------

    def reconcile_schema(self, engine: Engine, output: OutputConfig) -> None:
        """
        Asegura que la tabla destino tenga los campos declarados.

        Nunca borra ni cambia el tipo de columnas existentes. Si no se puede
        agregar la PK a una tabla existente se registra y se continua.
        """
        table_key = self._table_key(engine, output.table_name)
        self._keyless_tables.discard(table_key)
        inspector = inspect(engine)
        if not inspector.has_table(output.table_name):
            self._create_table(engine, output)
            primary_key = output.effective_primary_key
            field_names = {f.name.lower() for f in output.fields}
            surrogate = "id" not in field_names
            if primary_key and primary_key.lower() not in field_names and not (surrogate and primary_key.lower() == "id"):
                self._mark_keyless(
                    table_key,
                    f"La clave primaria {primary_key} no es un campo de {output.table_name}. "
                    f"El upsert se comportara como insert simple.",
                )
            return

        existing = {c["name"].lower() for c in inspector.get_columns(output.table_name)}
        missing = [f for f in output.fields if f.name.lower() not in existing]
        with engine.begin() as conn:
            self._set_lock_timeout(conn, self._truncate_lock_timeout)
            for target_field in missing:
                conn.execute(text(
                    f"ALTER TABLE {self._quote(engine, output.table_name)} "
                    f"ADD COLUMN {self._quote(engine, target_field.name)} {sanitize_type(target_field.type)}"
                ))
                self._comment_column(conn, output.table_name, target_field)
                logger.info(f"Columna {target_field.name} agregada a la tabla {output.table_name}")

        primary_key = output.effective_primary_key
        if not primary_key:
            return
        inspector = inspect(engine)
        current_pk = inspector.get_pk_constraint(output.table_name).get("constrained_columns") or []
        if current_pk:
            if [c.lower() for c in current_pk] != [primary_key.lower()] and not self._has_unique_key(
                inspector, output.table_name, primary_key
            ):
                self._mark_keyless(
                    table_key,
                    f"La tabla {output.table_name} ya tiene clave primaria ({', '.join(current_pk)}) "
                    f"distinta de {primary_key}. El upsert se comportara como insert simple.",
                )
            return
        try:
            with engine.begin() as conn:
                self._set_lock_timeout(conn, self._truncate_lock_timeout)
                conn.execute(text(
                    f"ALTER TABLE {self._quote(engine, output.table_name)} "
                    f"ADD PRIMARY KEY ({self._quote(engine, primary_key)})"
                ))
            logger.info(f"Clave primaria {primary_key} agregada a la tabla {output.table_name}")
        except SQLAlchemyError as e:
            message = (
                f"No se pudo agregar la clave primaria {primary_key} a {output.table_name}: "
                f"{getattr(e, 'orig', e)}. El upsert se comportara como insert simple."
            )
            self._mark_keyless(table_key, message)

    @staticmethod
    def _has_unique_key(inspector: Any, table_name: str, column: str) -> bool:
        """Hay una restriccion o indice unico exactamente sobre `column`."""
        candidates = [u.get("column_names") or [] for u in inspector.get_unique_constraints(table_name)]
        candidates += [i.get("column_names") or [] for i in inspector.get_indexes(table_name) if i.get("unique")]
        return any([str(c).lower() for c in columns] == [column.lower()] for columns in candidates)

    def _mark_keyless(self, table_key: Tuple[str, str], message: str) -> None:
        self._keyless_tables.add(table_key)
        logger.warning(message)
        warnings.warn(message, SchemaReconciliationWarning, stacklevel=3)

    def _create_table(self, engine: Engine, output: OutputConfig) -> None:
        primary_key = output.effective_primary_key
        pk_declared = bool(primary_key) and any(f.name.lower() == primary_key.lower() for f in output.fields)
        has_id_field = any(f.name.lower() == "id" for f in output.fields)

        columns: List[str] = []
        if not pk_declared and not has_id_field:
            columns.append(self._surrogate_key_ddl(engine))
        for target_field in output.fields:
            ddl = f"{self._quote(engine, target_field.name)} {sanitize_type(target_field.type)}"
            if pk_declared and target_field.name.lower() == primary_key.lower():
                ddl += " PRIMARY KEY"
            columns.append(ddl)

        with engine.begin() as conn:
            self._set_lock_timeout(conn, self._truncate_lock_timeout)
            conn.execute(text(f"CREATE TABLE {self._quote(engine, output.table_name)} ({', '.join(columns)})"))
            for target_field in output.fields:
                self._comment_column(conn, output.table_name, target_field)
        logger.info(f"Tabla {output.table_name} creada (clave primaria: {primary_key or 'id'})")

    @staticmethod
    def _surrogate_key_ddl(engine: Engine) -> str:
        if engine.dialect.name == "postgresql":
            return '"id" SERIAL PRIMARY KEY'
        if engine.dialect.name == "sqlite":
            return '"id" INTEGER PRIMARY KEY AUTOINCREMENT'
        return "id INTEGER PRIMARY KEY"

    def _comment_column(self, conn: Connection, table_name: str, target_field: TargetField) -> None:
        if not target_field.comment or conn.dialect.name != "postgresql":
            return
        conn.execute(text(
            f"COMMENT ON COLUMN {self._quote(conn, table_name)}.{self._quote(conn, target_field.name)} "
            f"IS '{target_field.comment.replace(chr(39), chr(39) * 2)}'"
        ))

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    def truncate(self, engine: Engine, table_name: str) -> None:
        """Vacia la tabla destino (modo OVERWRITE)."""
        with engine.begin() as conn:
            self._set_lock_timeout(conn, self._truncate_lock_timeout)
            if conn.dialect.name == "postgresql":
                conn.execute(text(f"TRUNCATE TABLE {self._quote(conn, table_name)}"))
            else:
                conn.execute(text(f"DELETE FROM {self._quote(conn, table_name)}"))
        logger.info(f"Tabla {table_name} truncada (OVERWRITE)")

    def load_batch(self, engine: Engine, output: OutputConfig, rows: Sequence[Row]) -> int:
        """
        Inserta el batch en una sola transaccion.

        UPDATE -> upsert; IGNORE -> omite conflictos de PK; sin PK efectiva o
        con ERROR -> insert simple.
        """
        if not rows:
            return 0

        column_names = [f.name for f in output.fields]
        table = Table(output.table_name, MetaData(), *[Column(name) for name in column_names])
        primary_key = output.effective_primary_key
        if self._table_key(engine, output.table_name) in self._keyless_tables:
            primary_key = ""

        with engine.begin() as conn:
            self._set_lock_timeout(conn, self._worker_lock_timeout)
            statement = self._insert_statement(conn, table, column_names, primary_key, output.conflict_strategy)
            conn.execute(statement, [dict(r) for r in rows])
        return len(rows)

    @staticmethod
    def _table_key(engine: Engine, table_name: str) -> Tuple[str, str]:
        return engine.url.render_as_string(hide_password=True), table_name.lower()

    @staticmethod
    def _insert_statement(conn: Connection, table: Table, column_names: List[str], primary_key: str, strategy: ConflictStrategy):
        dialect = conn.dialect.name
        if not primary_key or strategy == ConflictStrategy.ERROR or dialect not in ("postgresql", "sqlite"):
            return sa_insert(table)

        dialect_insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        statement = dialect_insert(table)
        conflict_target = [c for c in column_names if c.lower() == primary_key.lower()] or [primary_key]

        update_columns = [c for c in column_names if c.lower() != primary_key.lower()]
        if strategy == ConflictStrategy.IGNORE or not update_columns:
            return statement.on_conflict_do_nothing(index_elements=conflict_target)
        return statement.on_conflict_do_update(
            index_elements=conflict_target,
            set_={c: statement.excluded[c] for c in update_columns},
        )

    def delete_from_source(self, engine: Engine, table_name: str, primary_key: str, rows: Sequence[Row]) -> int:
        """
        Borra en origen las filas del batch por clave primaria.
        Las filas sin valor de PK se omiten.
        """
        keys = [find_key_case_insensitive(r, primary_key) for r in rows]
        params = [{"pk": k} for k in keys if k is not None]
        if not params:
            return 0
        with engine.begin() as conn:
            self._set_lock_timeout(conn, self._worker_lock_timeout)
            conn.execute(
                text(f"DELETE FROM {self._quote(conn, table_name)} WHERE {self._quote(conn, primary_key)} = :pk"),
                params,
            )
        logger.info(f"Eliminados {len(params)} registros de la tabla origen {table_name}")
        return len(params)

    # ------------------------------------------------------------------
    # Lectura del origen
    # ------------------------------------------------------------------

    def count_source(self, engine: Engine, sql: str) -> int:
        """
        Total estimado de filas del SQL de origen.
        Retorna -1 (desconocido) si el SQL ya limita filas o si el conteo falla.
        """
        if has_limit_clause(sql):
            return -1
        try:
            with engine.connect() as conn:
                return int(conn.execute(text(f"SELECT COUNT(*) FROM ({self._strip(sql)}) AS t")).scalar_one())
        except SQLAlchemyError as e:
            logger.warning(f"No se pudo contar el origen: {getattr(e, 'orig', e)}")
            return -1

    def stream_rows(self, engine: Engine, sql: str, batch_size: int) -> Iterator[List[Row]]:
        """
        Lee el SQL de origen con un cursor del lado del servidor y entrega
        listas de hasta `batch_size` filas (dict columna -> valor).
        """
        options: Dict[str, Any] = {"stream_results": True, "max_row_buffer": batch_size}
        if engine.dialect.name == "postgresql":
            options["postgresql_readonly"] = True

        with engine.connect() as conn:
            result = conn.execution_options(**options).execute(text(self._strip(sql)))
            for partition in result.mappings().partitions(batch_size):
                yield [dict(r) for r in partition]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _strip(sql: str) -> str:
        return (sql or "").strip().rstrip(";")

    @staticmethod
    def _quote(bind: Any, identifier: str) -> str:
        return bind.dialect.identifier_preparer.quote(identifier)

    @staticmethod
    def _set_lock_timeout(conn: Connection, seconds: int) -> None:
        if conn.dialect.name == "postgresql" and seconds:
            conn.execute(text(f"SET lock_timeout = '{int(seconds)}s'"))
