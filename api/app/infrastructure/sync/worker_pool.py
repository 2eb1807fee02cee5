"""
Pool acotado de workers para procesar batches en paralelo.

Caracteristicas:
- ThreadPoolExecutor dedicado con limite explicito de workers (default: 5)
- Cola acotada (default: 100): un semaforo cuenta los batches en vuelo
  (en ejecucion + esperando)
- Backpressure "caller runs": si la cola esta llena, el hilo que envia el
  batch lo ejecuta el mismo. Nunca se rechaza trabajo ni se encola sin limite.
- Threads con nombre prefijado para facil identificacion en logs

Uso:
    pool = BoundedExecutor(max_workers=5, queue_size=100)
    futures = [pool.submit(process_batch, batch) for batch in batches]
    for future in futures:
        future.result()
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, TypeVar

from loguru import logger


T = TypeVar("T")


class BoundedExecutor:
    """ThreadPoolExecutor con cola acotada y politica caller-runs."""

    def __init__(self, max_workers: int = 5, queue_size: int = 100, thread_name_prefix: str = "sync-worker-"):
        if max_workers < 1:
            raise ValueError("max_workers debe ser >= 1")
        if queue_size < 0:
            raise ValueError("queue_size no puede ser negativo")

        self.max_workers = max_workers
        self.queue_size = queue_size
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._slots = threading.BoundedSemaphore(max_workers + queue_size)
        self._stats_lock = threading.Lock()
        self._submitted = 0
        self._caller_runs = 0
        self._shutdown = False

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future:
        """
        Envia una tarea al pool.

        Si no hay lugar en la cola, la tarea se ejecuta en el hilo actual y se
        retorna un Future ya completado (con resultado o excepcion).
        """
        if self._shutdown:
            raise RuntimeError("El pool de workers esta cerrado")

        if self._slots.acquire(blocking=False):
            try:
                future = self._executor.submit(fn, *args, **kwargs)
            except RuntimeError:
                self._slots.release()
                raise
            future.add_done_callback(self._release_slot)
            with self._stats_lock:
                self._submitted += 1
            return future

        with self._stats_lock:
            self._caller_runs += 1
        logger.debug("Cola de workers llena: el hilo emisor ejecuta el batch")
        return self._run_inline(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        """Cierra el pool; con wait=True espera a que terminen los batches en curso."""
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("Cerrando pool de workers de sincronizacion...")
        self._executor.shutdown(wait=wait)
        logger.info("Pool de workers de sincronizacion cerrado")

    def get_stats(self) -> Dict[str, Any]:
        """Estadisticas del pool (para monitoreo y tests)."""
        with self._stats_lock:
            return {
                "max_workers": self.max_workers,
                "queue_size": self.queue_size,
                "submitted": self._submitted,
                "caller_runs": self._caller_runs,
                "shutdown": self._shutdown,
            }

    def _release_slot(self, _future: Future) -> None:
        self._slots.release()

    @staticmethod
    def _run_inline(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future
