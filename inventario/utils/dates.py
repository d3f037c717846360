"""Fechas del servidor: se guardan en UTC con tzinfo y se agrupan por zona horaria."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from dateutil import tz

from inventario.exceptions import InvalidInput


def utc_now() -> datetime:
    """Instante actual en UTC (con tzinfo)."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """
    Normaliza un instante a UTC con tzinfo.
    - Un valor sin tzinfo se toma como UTC (SQLite lo devuelve así en algunas versiones).
    """
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def resolve_timezone(name: str):
    zona = tz.gettz(name)
    if zona is None:
        raise InvalidInput(f"Zona horaria desconocida: {name}", tz=name)
    return zona


def local_day_bounds_utc(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """Límites [inicio, fin) del día `day` en `tz_name`, expresados en UTC."""
    zona = resolve_timezone(tz_name)
    inicio = datetime.combine(day, time.min, tzinfo=zona)
    fin = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zona)
    return as_utc(inicio), as_utc(fin)


def day_bounds_utc(tz_name: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Límites [inicio, fin) del día natural actual en `tz_name`."""
    now = as_utc(now or utc_now())
    hoy = now.astimezone(resolve_timezone(tz_name)).date()
    return local_day_bounds_utc(hoy, tz_name)
