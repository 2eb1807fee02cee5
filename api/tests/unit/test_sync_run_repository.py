"""
Tests unitarios para SyncRunRepository.
"""
from datetime import timedelta

from app.domain.entities.sync_run import SyncRun
from app.infrastructure.repositories.sync_run_repository import SyncRunRepository
from app.shared.constants.sync_constants import RunStatus
from app.shared.utils.datetime_utils import DateTimeUtils


def _finished(task_id: int, name: str, ok: bool = True, processed: int = 1) -> SyncRun:
    run = SyncRun.start(task_id, name)
    if ok:
        run.succeed(processed, [])
    else:
        run.fail("boom", processed, [])
    return run


class TestProgress:
    """Tests del contador de progreso."""

    def test_processed_count_only_moves_forward(self, run_repository: SyncRunRepository) -> None:
        run = run_repository.create(SyncRun.start(1, "tarea"))

        run_repository.update_processed_count(run.id, 30)
        run_repository.update_processed_count(run.id, 10)

        assert run_repository.get_by_id(run.id).processed_count == 30

        run_repository.update_processed_count(run.id, 45)
        assert run_repository.get_by_id(run.id).processed_count == 45

    def test_update_total_count(self, run_repository: SyncRunRepository) -> None:
        run = run_repository.create(SyncRun.start(1, "tarea"))

        run_repository.update_total_count(run.id, -1)

        assert run_repository.get_by_id(run.id).total_count == -1

    def test_save_persists_final_state(self, run_repository: SyncRunRepository) -> None:
        run = run_repository.create(SyncRun.start(1, "tarea"))
        run.succeed(12, [])

        run_repository.save(run)

        stored = run_repository.get_by_id(run.id)
        assert stored.status == RunStatus.SUCCESS
        assert stored.sync_count == 12
        assert stored.message == "Successfully synchronized 12 records."
        assert stored.duration_ms is not None


class TestQueries:
    """Tests de busqueda y agregados."""

    def test_find_latest_for_task(self, run_repository: SyncRunRepository) -> None:
        run_repository.create(_finished(1, "a"))
        latest = run_repository.create(_finished(1, "a", ok=False))
        run_repository.create(_finished(2, "b"))

        assert run_repository.find_latest_for_task(1).id == latest.id
        assert run_repository.find_latest_for_task(3) is None

    def test_search_filters(self, run_repository: SyncRunRepository) -> None:
        run_repository.create(_finished(1, "clientes"))
        run_repository.create(_finished(1, "clientes", ok=False))
        run_repository.create(_finished(2, "pedidos"))

        by_task, total = run_repository.search(task_id=1)
        assert total == 2
        assert {r.task_id for r in by_task} == {1}

        failed, total = run_repository.search(status=RunStatus.FAILURE)
        assert total == 1
        assert failed[0].message == "boom"

        by_keyword, total = run_repository.search(keyword="pedi")
        assert total == 1
        assert by_keyword[0].task_name == "pedidos"

    def test_search_paginates_newest_first(self, run_repository: SyncRunRepository) -> None:
        ids = [run_repository.create(_finished(1, "t")).id for _ in range(5)]

        page, total = run_repository.search(skip=1, limit=2)

        assert total == 5
        assert [r.id for r in page] == [ids[3], ids[2]]

    def test_count_by_day_and_since(self, run_repository: SyncRunRepository) -> None:
        run_repository.create(_finished(1, "a"))
        run_repository.create(_finished(1, "a", ok=False))
        since = DateTimeUtils.now_utc() - timedelta(days=1)

        by_day = run_repository.count_by_day(since)

        today = DateTimeUtils.now_utc().date().isoformat()
        assert by_day[today]["total"] == 2
        assert by_day[today]["SUCCESS"] == 1
        assert by_day[today]["FAILURE"] == 1
        assert run_repository.count_since(since) == 2
        assert run_repository.count_since(since, RunStatus.FAILURE) == 1

    def test_count_by_task(self, run_repository: SyncRunRepository) -> None:
        for _ in range(3):
            run_repository.create(_finished(7, "siete"))
        run_repository.create(_finished(8, "ocho"))

        top = run_repository.count_by_task(limit=1)

        assert top == [{"taskId": 7, "taskName": "siete", "count": 3}]

    def test_delete_for_task(self, run_repository: SyncRunRepository) -> None:
        run_repository.create(_finished(1, "a"))
        run_repository.create(_finished(1, "a"))

        assert run_repository.delete_for_task(1) == 2
        assert run_repository.find_latest_for_task(1) is None
