"""
Expresiones cron de las tareas -> CronTrigger de APScheduler.

Formatos aceptados:
- crontab de 5 campos: `min hora dia mes dia_semana` (0 o 7 = domingo)
- Quartz de 6/7 campos: `seg min hora dia mes dia_semana [anio]`
  (`?` equivale a `*`; dia de semana numerico 1 = domingo .. 7 = sabado)

APScheduler numera el dia de semana desde el lunes (0 = lunes), asi que los
valores numericos se traducen a nombres (`mon`, `tue`, ...).
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.shared.exceptions.domain import ValidationException


_DAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

# numero -> nombre APScheduler, segun la convencion de cada formato
_CRONTAB_DOW = {0: "sun", 1: "mon", 2: "tue", 3: "wed", 4: "thu", 5: "fri", 6: "sat", 7: "sun"}
_QUARTZ_DOW = {1: "sun", 2: "mon", 3: "tue", 4: "wed", 5: "thu", 6: "fri", 7: "sat"}


def _expand_dow_part(part: str, numbering: Dict[int, str]) -> List[str]:
    """Traduce un elemento de la lista de dias de semana (`n`, `a-b`, `a-b/s`, `*/s`)."""
    if part in ("*", "?"):
        return ["*"]

    step = 1
    if "/" in part:
        part, raw_step = part.split("/", 1)
        step = int(raw_step)
        if step < 1:
            raise ValueError("step must be >= 1")

    if part in ("*", "?"):
        start, end = min(numbering), max(numbering)
    elif "-" in part:
        raw_start, raw_end = part.split("-", 1)
        if not (raw_start.isdigit() and raw_end.isdigit()):
            if step > 1:
                raise ValueError(f"step not supported on named range '{part}'")
            return [part.lower()]
        start, end = int(raw_start), int(raw_end)
    elif part.isdigit():
        start = end = int(part)
    else:
        # Nombres (MON, fri, ...) pasan tal cual
        return [part.lower()]

    if start not in numbering or end not in numbering or start > end:
        raise ValueError(f"invalid day-of-week value '{part}'")

    names: List[str] = []
    for n in range(start, end + 1, step):
        name = numbering[n]
        if name not in names:
            names.append(name)
    return names


def translate_day_of_week(field: str, numbering: Dict[int, str]) -> str:
    """Campo dia de semana en la sintaxis de APScheduler."""
    names: List[str] = []
    for part in field.split(","):
        for name in _expand_dow_part(part.strip(), numbering):
            if name == "*":
                return "*"
            if name not in names:
                names.append(name)
    ordered = sorted(names, key=lambda n: _DAY_NAMES.index(n) if n in _DAY_NAMES else len(_DAY_NAMES))
    return ",".join(ordered)


def _normalize(field: str) -> str:
    return "*" if field == "?" else field


def build_cron_trigger(expression: str, timezone: Optional[str] = None) -> CronTrigger:
    """
    Construye el CronTrigger para la expresion.

    Raises:
        ValidationException: expresion vacia, con cantidad de campos invalida o
            con valores no soportados
    """
    tz = timezone or settings.SCHEDULER_TIMEZONE
    fields = (expression or "").split()
    try:
        if len(fields) == 5:
            minute, hour, day, month, dow = fields
            return CronTrigger(
                minute=minute,
                hour=hour,
                day=_normalize(day),
                month=month,
                day_of_week=translate_day_of_week(dow, _CRONTAB_DOW),
                timezone=tz,
            )
        if len(fields) in (6, 7):
            second, minute, hour, day, month, dow = fields[:6]
            year = fields[6] if len(fields) == 7 else None
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=_normalize(day),
                month=month,
                day_of_week=translate_day_of_week(dow, _QUARTZ_DOW),
                year=_normalize(year) if year else None,
                timezone=tz,
            )
    except ValueError as e:
        raise ValidationException(f"Invalid cron expression '{expression}': {e}", field="cron")
    raise ValidationException(
        f"Invalid cron expression '{expression}': expected 5, 6 or 7 fields", field="cron"
    )


def next_executions(expression: str, count: int = 5, timezone: Optional[str] = None,
                    now: Optional[datetime] = None) -> List[datetime]:
    """Proximas `count` fechas de disparo de la expresion."""
    trigger = build_cron_trigger(expression, timezone)
    current = now or datetime.now(trigger.timezone)
    result: List[datetime] = []
    previous = None
    for _ in range(count):
        fire_time = trigger.get_next_fire_time(previous, current)
        if fire_time is None:
            break
        result.append(fire_time)
        previous = current = fire_time
    return result
