"""
Tests unitarios para BoundedExecutor.

Verifica el limite de la cola y la politica caller-runs.
"""
import threading

import pytest

from app.infrastructure.sync.worker_pool import BoundedExecutor


@pytest.fixture
def pool():
    executor = BoundedExecutor(max_workers=1, queue_size=1, thread_name_prefix="test-pool-")
    yield executor
    executor.shutdown(wait=True)


class TestBoundedExecutor:
    """Tests para BoundedExecutor."""

    def test_invalid_arguments(self) -> None:
        with pytest.raises(ValueError):
            BoundedExecutor(max_workers=0)
        with pytest.raises(ValueError):
            BoundedExecutor(max_workers=1, queue_size=-1)

    def test_submit_runs_on_worker_thread(self, pool: BoundedExecutor) -> None:
        future = pool.submit(lambda: threading.current_thread().name)

        assert future.result(timeout=5).startswith("test-pool-")

    def test_caller_runs_when_queue_is_full(self, pool: BoundedExecutor) -> None:
        """Con 1 worker ocupado y 1 tarea en cola, la tercera corre en el hilo emisor."""
        release = threading.Event()
        started = threading.Event()

        def blocker() -> str:
            started.set()
            release.wait(timeout=5)
            return "blocked"

        first = pool.submit(blocker)
        assert started.wait(timeout=5)
        second = pool.submit(lambda: "queued")

        caller = threading.current_thread().name
        third = pool.submit(lambda: threading.current_thread().name)

        assert third.done()
        assert third.result() == caller
        assert pool.get_stats()["caller_runs"] == 1

        release.set()
        assert first.result(timeout=5) == "blocked"
        assert second.result(timeout=5) == "queued"

    def test_inline_exception_is_captured_in_future(self, pool: BoundedExecutor) -> None:
        release = threading.Event()
        started = threading.Event()

        def blocker() -> None:
            started.set()
            release.wait(timeout=5)

        pool.submit(blocker)
        assert started.wait(timeout=5)
        pool.submit(lambda: None)

        def boom() -> None:
            raise RuntimeError("fallo inline")

        future = pool.submit(boom)
        release.set()

        assert isinstance(future.exception(), RuntimeError)

    def test_slots_are_released_after_completion(self, pool: BoundedExecutor) -> None:
        for i in range(10):
            assert pool.submit(lambda n=i: n * 2).result(timeout=5) == i * 2

        stats = pool.get_stats()
        assert stats["submitted"] == 10
        assert stats["caller_runs"] == 0

    def test_submit_after_shutdown_fails(self) -> None:
        executor = BoundedExecutor(max_workers=1, queue_size=0)
        executor.shutdown()

        with pytest.raises(RuntimeError):
            executor.submit(lambda: 1)
        assert executor.get_stats()["shutdown"] is True
