"""
Tests unitarios para SqlGateway sobre SQLite.

Verifica la reconciliacion del esquema destino, las estrategias de conflicto,
el borrado en origen y la lectura en streaming.
"""
import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from app.domain.entities.sync_task import OutputConfig, TargetField
from app.infrastructure.sync.sql_gateway import SqlGateway, find_key_case_insensitive, sanitize_type
from app.shared.constants.sync_constants import ConflictStrategy
from app.shared.exceptions.sync import SchemaReconciliationWarning
from tests.support import create_users_table, fetch_all, users


def _output(target_ds, **overrides) -> OutputConfig:
    values = dict(
        node_id="out",
        data_source_id=str(target_ds.id),
        table_name="dst_users",
        primary_key="user_id",
        fields=[
            TargetField("user_id", "INTEGER", is_pk=True),
            TargetField("full_name", "VARCHAR(255)"),
        ],
    )
    values.update(overrides)
    return OutputConfig(**values)


class TestHelpers:
    """Tests para las funciones auxiliares."""

    @pytest.mark.parametrize("declared,expected", [
        (None, "VARCHAR(255)"),
        ("  ", "VARCHAR(255)"),
        ("string", "VARCHAR(255)"),
        ("int", "INTEGER"),
        ("datetime", "TIMESTAMP"),
        ("NUMERIC(10,2)", "NUMERIC(10,2)"),
    ])
    def test_sanitize_type(self, declared, expected) -> None:
        assert sanitize_type(declared) == expected

    def test_find_key_case_insensitive(self) -> None:
        assert find_key_case_insensitive({"ID": 5}, "id") == 5
        assert find_key_case_insensitive({"id": 5}, "id") == 5
        assert find_key_case_insensitive({}, "id") is None


class TestReconcileSchema:
    """Tests para reconcile_schema."""

    def test_creates_missing_table_with_primary_key(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        gateway.reconcile_schema(target_engine, _output(target_ds))

        inspector = inspect(target_engine)
        assert inspector.has_table("dst_users")
        assert inspector.get_pk_constraint("dst_users")["constrained_columns"] == ["user_id"]

    def test_surrogate_id_when_no_primary_key(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        output = _output(target_ds, primary_key="", fields=[TargetField("full_name")])

        gateway.reconcile_schema(target_engine, output)

        columns = [c["name"] for c in inspect(target_engine).get_columns("dst_users")]
        assert columns == ["id", "full_name"]

    def test_adds_missing_columns_without_dropping(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        with target_engine.begin() as conn:
            conn.exec_driver_sql("CREATE TABLE dst_users (user_id INTEGER PRIMARY KEY, legacy TEXT)")

        gateway.reconcile_schema(target_engine, _output(target_ds))

        columns = {c["name"] for c in inspect(target_engine).get_columns("dst_users")}
        assert columns == {"user_id", "legacy", "full_name"}

    def test_primary_key_failure_only_warns(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        """SQLite no soporta ADD PRIMARY KEY: se advierte y se continua."""
        with target_engine.begin() as conn:
            conn.exec_driver_sql("CREATE TABLE dst_users (user_id INTEGER, full_name TEXT)")

        with pytest.warns(SchemaReconciliationWarning):
            gateway.reconcile_schema(target_engine, _output(target_ds))

        assert inspect(target_engine).has_table("dst_users")

    def test_table_without_key_falls_back_to_insert(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        with target_engine.begin() as conn:
            conn.exec_driver_sql("CREATE TABLE dst_users (user_id INTEGER, full_name TEXT)")
        output = _output(target_ds)
        with pytest.warns(SchemaReconciliationWarning):
            gateway.reconcile_schema(target_engine, output)

        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "a"}])
        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "b"}])

        assert len(fetch_all(target_engine, "SELECT * FROM dst_users")) == 2

    def test_primary_key_on_another_column_falls_back_to_insert(self, gateway: SqlGateway, target_engine,
                                                                target_ds) -> None:
        with target_engine.begin() as conn:
            conn.exec_driver_sql(
                "CREATE TABLE dst_users (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, full_name TEXT)"
            )
        output = _output(target_ds)
        with pytest.warns(SchemaReconciliationWarning, match="distinta de user_id"):
            gateway.reconcile_schema(target_engine, output)

        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "a"}])
        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "b"}])

        assert len(fetch_all(target_engine, "SELECT * FROM dst_users")) == 2

    def test_unique_index_on_declared_key_keeps_upsert(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        with target_engine.begin() as conn:
            conn.exec_driver_sql(
                "CREATE TABLE dst_users (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, full_name TEXT)"
            )
            conn.exec_driver_sql("CREATE UNIQUE INDEX ux_dst_users_user_id ON dst_users (user_id)")
        output = _output(target_ds)
        gateway.reconcile_schema(target_engine, output)

        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "a"}])
        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "b"}])

        assert fetch_all(target_engine, "SELECT user_id, full_name FROM dst_users") == [
            {"user_id": 1, "full_name": "b"}
        ]


class TestLoadBatch:
    """Tests para load_batch y las estrategias de conflicto."""

    @pytest.fixture
    def prepared(self, gateway: SqlGateway, target_engine, target_ds):
        def _prepare(strategy: ConflictStrategy) -> OutputConfig:
            output = _output(target_ds, conflict_strategy=strategy)
            gateway.reconcile_schema(target_engine, output)
            gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "old"}])
            return output
        return _prepare

    def test_update_strategy_upserts(self, gateway: SqlGateway, target_engine, prepared) -> None:
        output = prepared(ConflictStrategy.UPDATE)

        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "new"}, {"user_id": 2, "full_name": "b"}])

        rows = fetch_all(target_engine, "SELECT user_id, full_name FROM dst_users ORDER BY user_id")
        assert rows == [{"user_id": 1, "full_name": "new"}, {"user_id": 2, "full_name": "b"}]

    def test_ignore_strategy_keeps_existing_row(self, gateway: SqlGateway, target_engine, prepared) -> None:
        output = prepared(ConflictStrategy.IGNORE)

        gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "new"}])

        assert fetch_all(target_engine, "SELECT full_name FROM dst_users") == [{"full_name": "old"}]

    def test_error_strategy_fails_on_conflict(self, gateway: SqlGateway, target_engine, prepared) -> None:
        output = prepared(ConflictStrategy.ERROR)

        with pytest.raises(IntegrityError):
            gateway.load_batch(target_engine, output, [{"user_id": 1, "full_name": "new"}])

    def test_failed_batch_is_rolled_back(self, gateway: SqlGateway, target_engine, prepared) -> None:
        """El batch es una sola transaccion: un conflicto no deja filas parciales."""
        output = prepared(ConflictStrategy.ERROR)

        with pytest.raises(IntegrityError):
            gateway.load_batch(target_engine, output, [{"user_id": 5, "full_name": "e"}, {"user_id": 1, "full_name": "x"}])

        assert fetch_all(target_engine, "SELECT COUNT(*) AS n FROM dst_users") == [{"n": 1}]

    def test_empty_batch_is_noop(self, gateway: SqlGateway, target_engine, target_ds) -> None:
        assert gateway.load_batch(target_engine, _output(target_ds), []) == 0

    def test_truncate(self, gateway: SqlGateway, target_engine, prepared) -> None:
        prepared(ConflictStrategy.UPDATE)

        gateway.truncate(target_engine, "dst_users")

        assert fetch_all(target_engine, "SELECT COUNT(*) AS n FROM dst_users") == [{"n": 0}]


class TestSourceOperations:
    """Tests de lectura, conteo y borrado en origen."""

    def test_count_source(self, gateway: SqlGateway, source_engine) -> None:
        create_users_table(source_engine, users(7))

        assert gateway.count_source(source_engine, "SELECT * FROM src_users;") == 7

    def test_count_is_unknown_with_limit(self, gateway: SqlGateway, source_engine) -> None:
        create_users_table(source_engine, users(7))

        assert gateway.count_source(source_engine, "SELECT * FROM src_users LIMIT 3") == -1

    def test_count_failure_is_unknown(self, gateway: SqlGateway, source_engine) -> None:
        assert gateway.count_source(source_engine, "SELECT * FROM missing_table") == -1

    def test_stream_rows_in_batches(self, gateway: SqlGateway, source_engine) -> None:
        create_users_table(source_engine, users(7))

        batches = list(gateway.stream_rows(source_engine, "SELECT id, name FROM src_users ORDER BY id", 3))

        assert [len(b) for b in batches] == [3, 3, 1]
        assert batches[0][0] == {"id": 1, "name": "user-1"}

    def test_delete_from_source(self, gateway: SqlGateway, source_engine) -> None:
        create_users_table(source_engine, users(4))

        deleted = gateway.delete_from_source(source_engine, "src_users", "id", [{"ID": 1}, {"id": 3}, {"name": "x"}])

        assert deleted == 2
        assert fetch_all(source_engine, "SELECT id FROM src_users ORDER BY id") == [{"id": 2}, {"id": 4}]
