"""
Orquestador del pipeline de sincronizacion para una tarea.

Pasos de una ejecucion:
1. Validar la definicion (nodos, SQL, tabla, campos, conexiones)
2. Reconciliar el esquema destino
3. Truncar el destino si el modo es OVERWRITE
4. Contar el origen (estimado) y leerlo en streaming
5. Enviar cada batch al pool de workers (mapeo, proyeccion, carga,
   progreso y borrado opcional en origen)
6. Esperar todos los batches
7. Finalizar la ejecucion una sola vez (SUCCESS o FAILURE)

Los pasos 2 y 3 ocurren antes de cualquier trabajo en paralelo.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Future, wait as wait_all
from contextlib import closing
from typing import List, Optional

from loguru import logger
from sqlalchemy.engine import Engine

from app.core.config import settings
from app.domain.entities.sync_run import NodeTrace, SyncRun
from app.domain.entities.sync_task import SyncFlowSpec, SyncTaskDefinition
from app.domain.repositories.sync_run_repository import ISyncRunRepository
from app.infrastructure.connections.connection_directory import ConnectionDirectory
from app.infrastructure.sync.retry import RetryPolicy, root_message, run_with_retry
from app.infrastructure.sync.sql_gateway import SqlGateway
from app.infrastructure.sync.transform import apply_mappings, project_rows
from app.infrastructure.sync.types import Batch, BatchReport
from app.infrastructure.sync.worker_pool import BoundedExecutor
from app.shared.constants.sync_constants import MAPPING_NODE_LABEL, SyncNodeKind, WriteMode
from app.shared.exceptions.base import AppException
from app.shared.exceptions.sync import SyncException
from app.shared.utils.datetime_utils import DateTimeUtils


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class _ProgressCounter:
    """Contador compartido de filas procesadas (solo crece)."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def add(self, n: int) -> int:
        with self._lock:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class _RunContext:
    """Estado de una ejecucion compartido entre el hilo extractor y los workers."""

    def __init__(self, run: SyncRun, spec: SyncFlowSpec, source: Engine, target: Engine):
        self.run = run
        self.spec = spec
        self.source = source
        self.target = target
        self.progress = _ProgressCounter()
        self.failed = threading.Event()


class SyncPipeline:
    """
    Ejecutor de tareas de sincronizacion.

    El pool de workers es del pipeline (compartido entre ejecuciones) y se
    cierra con `shutdown()` al detener la aplicacion.
    """

    def __init__(
        self,
        run_repository: ISyncRunRepository,
        connections: ConnectionDirectory,
        executor: Optional[BoundedExecutor] = None,
        gateway: Optional[SqlGateway] = None,
        retry_policy: Optional[RetryPolicy] = None,
        default_batch_size: Optional[int] = None,
    ) -> None:
        self._runs = run_repository
        self._connections = connections
        self._executor = executor or BoundedExecutor(
            max_workers=settings.SYNC_WORKER_POOL_SIZE,
            queue_size=settings.SYNC_WORKER_QUEUE_SIZE,
        )
        self._gateway = gateway or SqlGateway(
            truncate_lock_timeout=settings.SYNC_TRUNCATE_LOCK_TIMEOUT_SECONDS,
            worker_lock_timeout=settings.SYNC_WORKER_LOCK_TIMEOUT_SECONDS,
        )
        self._retry_policy = retry_policy or RetryPolicy.from_settings()
        self._default_batch_size = default_batch_size or settings.SYNC_DEFAULT_BATCH_SIZE

    @property
    def executor(self) -> BoundedExecutor:
        return self._executor

    def start_run(self, task: SyncTaskDefinition) -> SyncRun:
        """Crea y persiste la ejecucion en RUNNING (visible en monitoreo de inmediato)."""
        run = self._runs.create(SyncRun.start(task.id, task.name))
        logger.info(f"Ejecucion {run.id} iniciada para la tarea {task.id} ({task.name})")
        return run

    def execute(self, task: SyncTaskDefinition, run: Optional[SyncRun] = None) -> SyncRun:
        """
        Ejecuta la tarea hasta completarla y retorna la ejecucion finalizada.

        Los errores no se propagan: quedan registrados en la ejecucion (FAILURE).
        """
        run = run or self.start_run(task)
        traces: List[NodeTrace] = []
        progress = _ProgressCounter()
        started = time.perf_counter()

        try:
            spec = task.flow_spec(self._default_batch_size)
            input_trace, output_trace = self._build_traces(spec, traces)

            source = self._connections.engine_for(spec.input.data_source_id)
            target = self._connections.engine_for(spec.output.data_source_id)

            ctx = _RunContext(run, spec, source, target)
            progress = ctx.progress

            self._gateway.reconcile_schema(target, spec.output)
            if spec.output.write_mode == WriteMode.OVERWRITE:
                self._gateway.truncate(target, spec.output.table_name)

            total = self._gateway.count_source(source, spec.input.sql)
            run.total_count = total
            self._runs.update_total_count(run.id, total)

            futures = self._extract_and_submit(ctx)
            self._join(futures)

            processed = progress.value
            end = DateTimeUtils.now_utc()
            input_trace.finish(processed, end)
            output_trace.finish(processed, end)
            run.succeed(processed, traces)
            logger.success(
                f"Tarea {task.id}: {processed} registros sincronizados en {_elapsed_ms(started)}ms"
            )
        except Exception as e:
            message = e.message if isinstance(e, AppException) else root_message(e)
            if isinstance(e, SyncException):
                logger.error(f"Tarea {task.id} fallida: {message}")
            else:
                logger.exception(f"Tarea {task.id} fallida: {message}")
            traces.append(NodeTrace(
                node_type="ERROR",
                node_name="Execution Error",
                details={"time": DateTimeUtils.to_iso_string(DateTimeUtils.now_utc()), "error": message},
            ))
            run.fail(message, progress.value, traces)
        finally:
            if run.is_running:
                # BaseException (p. ej. interrupcion): se finaliza igual
                run.fail("Execution interrupted", progress.value, traces)
            self._runs.save(run)

        return run

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Pasos internos
    # ------------------------------------------------------------------

    @staticmethod
    def _build_traces(spec: SyncFlowSpec, traces: List[NodeTrace]):
        now = DateTimeUtils.now_utc()
        input_trace = NodeTrace(
            node_type=SyncNodeKind.INPUT.value,
            node_id=spec.input.node_id,
            node_name="Source input",
            start_time=now,
            details={"sql": spec.input.sql, "batchSize": spec.input.batch_size},
        )
        traces.append(input_trace)
        for stage in spec.mappings:
            traces.append(NodeTrace(
                node_type=SyncNodeKind.MAPPING.value,
                node_id=stage.node_id,
                node_name=MAPPING_NODE_LABEL,
                details={"mappingCount": len(stage.mappings)},
            ))
        output_trace = NodeTrace(
            node_type=SyncNodeKind.OUTPUT.value,
            node_id=spec.output.node_id,
            node_name="Target output",
            start_time=now,
            details={"tableName": spec.output.table_name, "writeMode": spec.output.write_mode.value},
        )
        traces.append(output_trace)
        return input_trace, output_trace

    def _extract_and_submit(self, ctx: _RunContext) -> List[Future]:
        """
        Lee el origen (un solo hilo) y envia cada batch al pool.
        Si un batch ya fallo se deja de extraer.
        """
        futures: List[Future] = []
        batch_number = 0
        stream = self._gateway.stream_rows(ctx.source, ctx.spec.input.sql, ctx.spec.input.batch_size)
        try:
            with closing(stream):
                for rows in stream:
                    if ctx.failed.is_set():
                        logger.warning(f"Ejecucion {ctx.run.id}: un batch fallo, se detiene la extraccion")
                        break
                    batch_number += 1
                    futures.append(self._executor.submit(self._process_batch, ctx, Batch(batch_number, rows)))
        except BaseException:
            # La ejecucion no se finaliza con batches todavia en vuelo
            wait_all(futures)
            raise
        return futures

    @staticmethod
    def _join(futures: List[Future]) -> None:
        """Espera todos los batches y propaga el primer error (en orden de envio)."""
        first_error: Optional[BaseException] = None
        for future in futures:
            error = future.exception()
            if error is not None and first_error is None:
                first_error = error
        if first_error is not None:
            raise first_error

    def _process_batch(self, ctx: _RunContext, batch: Batch) -> BatchReport:
        """Mapeo, proyeccion, carga, progreso y borrado opcional de un batch."""
        try:
            spec = ctx.spec

            start = time.perf_counter()
            mapped = apply_mappings(batch.rows, spec.mappings)
            projected = project_rows(mapped, spec.output.fields)
            mapping_ms = _elapsed_ms(start)

            start = time.perf_counter()
            run_with_retry(
                lambda: self._gateway.load_batch(ctx.target, spec.output, projected),
                f"Carga batch {batch.number} en {spec.output.table_name}",
                self._retry_policy,
            )
            load_ms = _elapsed_ms(start)

            processed = ctx.progress.add(batch.size)
            self._report_progress(ctx.run.id, processed)

            delete_ms = 0
            if spec.output.deletes_source:
                start = time.perf_counter()
                run_with_retry(
                    lambda: self._gateway.delete_from_source(
                        ctx.source, spec.output.source_table_name, spec.output.source_primary_key, batch.rows
                    ),
                    f"Borrado en origen batch {batch.number}",
                    self._retry_policy,
                )
                delete_ms = _elapsed_ms(start)

            report = BatchReport(batch.number, batch.size, mapping_ms, load_ms, delete_ms)
            logger.info(
                f"Batch {report.number} processed: size={report.size}, total={report.total_ms}ms "
                f"[Mapping: {report.mapping_ms}ms, Load: {report.load_ms}ms, Delete: {report.delete_ms}ms]"
            )
            return report
        except Exception as e:
            ctx.failed.set()
            logger.error(f"Fallo el batch {batch.number} de la ejecucion {ctx.run.id}: {e}")
            raise

    def _report_progress(self, run_id: int, processed: int) -> None:
        # Transaccion independiente de la carga: un fallo aqui no revierte datos
        try:
            self._runs.update_processed_count(run_id, processed)
        except Exception as e:
            logger.warning(f"No se pudo actualizar el progreso de la ejecucion {run_id}: {e}")
