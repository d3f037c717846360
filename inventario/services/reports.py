"""
Reportes de solo lectura para el panel principal.

Nada se guarda precalculado: cada llamada vuelve a contar sobre las tablas de
materiales, movimientos y usuarios.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from inventario.exceptions import PersistenceUnavailable
from inventario.models.material import Material
from inventario.models.movement import Movement
from inventario.models.user import User
from inventario.services.authorization import (
    Entidad,
    Operacion,
    Principal,
    authorize,
)
from inventario.utils.dates import day_bounds_utc
from inventario.utils.getenv import get_env

DEFAULT_TIMEZONE = get_env("APP_TIMEZONE", "America/Lima")


def summary(
    db: Session,
    principal: Principal,
    tz_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Resumen del panel:
    - total_materiales: materiales registrados
    - stock_bajo: materiales con stock <= stock_minimo
    - usuarios_activos: usuarios con `activo = true`
    - movimientos_hoy: movimientos del día natural actual en `tz_name`
    """
    authorize(principal, Operacion.LEER, Entidad.REPORTE)
    inicio, fin = day_bounds_utc(tz_name or DEFAULT_TIMEZONE, now)

    try:
        total_materiales = db.exec(select(func.count(Material.id))).one()
        stock_bajo = db.exec(
            select(func.count(Material.id)).where(
                Material.stock <= Material.stock_minimo
            )
        ).one()
        usuarios_activos = db.exec(
            select(func.count(func.distinct(User.id))).where(User.activo == True)  # noqa: E712
        ).one()
        movimientos_hoy = db.exec(
            select(func.count(Movement.id)).where(
                Movement.fecha >= inicio, Movement.fecha < fin
            )
        ).one()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    return {
        "total_materiales": total_materiales,
        "stock_bajo": stock_bajo,
        "usuarios_activos": usuarios_activos,
        "movimientos_hoy": movimientos_hoy,
    }


def low_stock(db: Session, principal: Principal) -> list[Material]:
    """Materiales que requieren reabastecimiento, los más críticos primero."""
    authorize(principal, Operacion.LEER, Entidad.REPORTE)
    try:
        return list(
            db.exec(
                select(Material)
                .where(Material.stock <= Material.stock_minimo)
                .order_by(Material.stock - Material.stock_minimo, Material.codigo)
            ).all()
        )
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e


def recent_activity(
    db: Session, principal: Principal, limit: int = 5
) -> list[tuple[Movement, str, str, str]]:
    """Últimos movimientos con código, nombre y unidad del material."""
    authorize(principal, Operacion.LEER, Entidad.REPORTE)
    try:
        return list(
            db.exec(
                select(Movement, Material.codigo, Material.nombre, Material.unidad)
                .join(Material, Material.id == Movement.material_id)
                .order_by(Movement.fecha.desc(), Movement.id.desc())
                .limit(limit)
            ).all()
        )
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e
