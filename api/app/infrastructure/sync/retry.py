"""
Politica de reintentos para escrituras con contencion (lock wait / deadlock).

Solo se reintentan errores transitorios; cualquier otro fallo de escritura se
propaga de inmediato como PermanentWriteError.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeVar

from loguru import logger
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.core.config import settings
from app.shared.exceptions.sync import PermanentWriteError, SyncException, TransientWriteError

T = TypeVar("T")

# PostgreSQL: deadlock_detected, lock_not_available, serialization_failure
TRANSIENT_SQLSTATES = frozenset({"40P01", "55P03", "40001"})
# MySQL: lock wait timeout exceeded, deadlock found
TRANSIENT_MYSQL_CODES = frozenset({1205, 1213})
TRANSIENT_MESSAGES = ("database is locked",)


@dataclass(frozen=True)
class RetryPolicy:
    """Intentos maximos y espera: base * 2^(n-1) + jitter aleatorio."""

    max_attempts: int = 5
    base_seconds: float = 2.0
    max_jitter_seconds: float = 1.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.SYNC_RETRY_MAX_ATTEMPTS,
            base_seconds=settings.SYNC_RETRY_BASE_SECONDS,
            max_jitter_seconds=settings.SYNC_RETRY_MAX_JITTER_SECONDS,
        )


def root_message(exc: BaseException) -> str:
    """Mensaje del error del driver si lo hay (sin el envoltorio de SQLAlchemy)."""
    if isinstance(exc, SyncException):
        return exc.message
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).strip()


def is_transient_error(exc: BaseException) -> bool:
    """Clasifica un error de escritura como transitorio (reintentable)."""
    if isinstance(exc, TransientWriteError):
        return True
    orig = getattr(exc, "orig", None) or exc

    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in TRANSIENT_SQLSTATES:
        return True

    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int) and args[0] in TRANSIENT_MYSQL_CODES:
        return True

    message = str(orig).lower()
    return any(m in message for m in TRANSIENT_MESSAGES)


def _log_before_sleep(description: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def _log(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        wait = state.next_action.sleep if state.next_action else 0
        logger.warning(
            f"{description}: contencion de locks ({root_message(exc) if exc else '?'}). "
            f"Reintento {state.attempt_number}/{max_attempts} en {wait:.2f}s"
        )
    return _log


def run_with_retry(operation: Callable[[], T], description: str, policy: RetryPolicy) -> T:
    """
    Ejecuta `operation` reintentando solo ante errores transitorios.

    Raises:
        TransientWriteError: si se agotaron los intentos
        PermanentWriteError: ante cualquier otro error de escritura
    """
    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_seconds) + wait_random(0, policy.max_jitter_seconds),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_before_sleep(description, policy.max_attempts),
        reraise=True,
    )
    try:
        return retrying(operation)
    except Exception as e:
        if is_transient_error(e):
            raise TransientWriteError(root_message(e), attempts=policy.max_attempts) from e
        if isinstance(e, PermanentWriteError):
            raise
        raise PermanentWriteError(root_message(e)) from e
