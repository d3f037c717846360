"""
Ledger de movimientos: registra entradas y salidas de forma atómica.

Cada movimiento se escribe en la misma transacción que el nuevo stock del
material. El par (nuevo stock, fila de movimiento) se confirma junto o no se
confirma.

Concurrencia:
    - La fila del material se lee con `FOR UPDATE` (en PostgreSQL queda
      bloqueada hasta el commit; SQLite lo ignora).
    - El stock se cambia con un único UPDATE condicionado: `stock + delta`
      se calcula en la base de datos y, en las salidas, solo se aplica si el
      resultado no es negativo. Ganar o perder la carrera se decide ahí, así
      que quien pierde recibe `InsufficientStock`, nunca `Conflict`.
    - `Conflict` queda para los errores de bloqueo del driver que persisten
      tras agotar los reintentos.
    - Solo se bloquea la fila del material afectado: materiales distintos no
      compiten entre sí.
    - La `fecha` de un movimiento nunca es anterior a la del último movimiento
      del mismo material, de modo que el orden por `(fecha, id)` coincide con
      el orden en que cambió el stock.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlmodel import Session, func, select

from inventario.exceptions import (
    Conflict,
    InsufficientStock,
    InvalidInput,
    MaterialNotFound,
    NotFound,
    PersistenceUnavailable,
)
from inventario.models.enums import TipoMovimiento
from inventario.models.material import Material
from inventario.models.movement import Movement
from inventario.services.authorization import (
    Entidad,
    Operacion,
    Principal,
    authorize,
)
from inventario.utils.dates import as_utc, utc_now
from inventario.utils.getenv import get_int_env
from inventario.utils.logger import get_logger
from inventario.utils.validation import optional_text, parse_decimal

logger = get_logger("ledger")

# Reintentos internos cuando el driver informa de un bloqueo
MAX_RETRIES = get_int_env("LEDGER_MAX_RETRIES", 5)

MAX_MOTIVO = 500

# Mensajes del driver que indican contención de bloqueos, no una caída
_CONTENTION_MARKERS = ("database is locked", "deadlock detected", "could not serialize")


def _is_contention(error: DBAPIError) -> bool:
    message = str(getattr(error, "orig", error)).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)


def _parse_tipo(tipo: Any) -> TipoMovimiento:
    try:
        return TipoMovimiento(tipo.value if isinstance(tipo, TipoMovimiento) else tipo)
    except ValueError:
        raise InvalidInput(
            "El tipo debe ser 'entrada' o 'salida'", campo="tipo", value=str(tipo)
        )


def _locked_material(db: Session, material_id: int) -> Optional[Material]:
    # populate_existing: ignora la copia que pudiera haber en la sesión
    return db.exec(
        select(Material)
        .where(Material.id == material_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()


def _current_stock(db: Session, material_id: int) -> Optional[Decimal]:
    return db.exec(select(Material.stock).where(Material.id == material_id)).first()


def _apply_delta(db: Session, material_id: int, delta: Decimal) -> bool:
    """
    Suma `delta` al stock en un solo UPDATE.
    Devuelve False si la fila no se tocó (material borrado o stock insuficiente).
    """
    nuevo = func.round(Material.stock + delta, 3)
    statement = (
        update(Material)
        .where(Material.id == material_id)
        .values(stock=nuevo, version=Material.version + 1)
        .execution_options(synchronize_session=False)
    )
    if delta < 0:
        statement = statement.where(nuevo >= 0)
    return db.exec(statement).rowcount == 1


def _next_fecha(db: Session, material_id: int) -> datetime:
    """Ahora, o la fecha del último movimiento del material si el reloj retrocedió."""
    ahora = utc_now()
    ultima = db.exec(
        select(func.max(Movement.fecha)).where(Movement.material_id == material_id)
    ).one()
    if ultima is None:
        return ahora
    return max(ahora, as_utc(ultima))


def record_movement(
    db: Session,
    principal: Principal,
    material_id: int,
    tipo: Any,
    cantidad: Any,
    motivo: Optional[str] = None,
    max_retries: Optional[int] = None,
) -> Movement:
    """
    Registra una entrada o salida y ajusta el stock del material.

    Raises:
        Forbidden: el usuario no es admin ni almacenero
        InvalidInput: tipo desconocido, cantidad no positiva o motivo > 500
        MaterialNotFound: el material no existe
        InsufficientStock: la salida dejaría el stock en negativo
        Conflict: la base de datos siguió bloqueada tras los reintentos
        PersistenceUnavailable: fallo de la base de datos

    Un intento rechazado no deja rastro: ni movimiento ni cambio de stock.
    """
    authorize(principal, Operacion.REGISTRAR, Entidad.MOVIMIENTO)

    tipo = _parse_tipo(tipo)
    cantidad = parse_decimal(cantidad, "cantidad", positive=True)
    motivo = optional_text(motivo, "motivo", MAX_MOTIVO)
    retries = MAX_RETRIES if max_retries is None else max_retries
    delta = cantidad if tipo is TipoMovimiento.ENTRADA else -cantidad

    for attempt in range(1, retries + 2):
        try:
            material = _locked_material(db, material_id)
            if material is None:
                db.rollback()
                raise MaterialNotFound(id=material_id)
            codigo = material.codigo

            if not _apply_delta(db, material_id, delta):
                disponible = _current_stock(db, material_id)
                db.rollback()
                if disponible is None:
                    raise MaterialNotFound(id=material_id)
                if disponible + delta >= 0:
                    continue
                logger.info(
                    "ledger.insufficient_stock",
                    material_id=material_id,
                    available=str(disponible),
                    requested=str(cantidad),
                    actor_id=principal.id,
                )
                raise InsufficientStock(
                    f"Stock insuficiente para {codigo}: "
                    f"disponible {disponible}, solicitado {cantidad}",
                    material_id=material_id,
                    available=disponible,
                    requested=cantidad,
                )

            nuevo_stock = _current_stock(db, material_id)
            movement = Movement(
                material_id=material_id,
                tipo=tipo.value,
                cantidad=cantidad,
                motivo=motivo,
                stock_resultante=nuevo_stock,
                id_usuario=principal.id,
                fecha=_next_fecha(db, material_id),
            )
            db.add(movement)
            db.commit()
        except OperationalError as e:
            db.rollback()
            if _is_contention(e):
                logger.info("ledger.conflict", material_id=material_id, attempt=attempt)
                continue
            logger.error("ledger.persistence_error", material_id=material_id, error=str(e))
            raise PersistenceUnavailable() from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("ledger.persistence_error", material_id=material_id, error=str(e))
            raise PersistenceUnavailable() from e

        db.refresh(movement)
        logger.info(
            "ledger.record",
            movement_id=movement.id,
            material_id=material_id,
            tipo=tipo.value,
            qty=str(cantidad),
            stock=str(nuevo_stock),
            actor_id=principal.id,
            attempt=attempt,
        )
        return movement

    logger.warning("ledger.retries_exhausted", material_id=material_id, attempts=retries + 1)
    raise Conflict(material_id=material_id, attempts=retries + 1)


def get_movement(db: Session, principal: Principal, movement_id: int) -> Movement:
    authorize(principal, Operacion.LEER, Entidad.MOVIMIENTO)
    try:
        movement = db.get(Movement, movement_id)
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e
    if not movement:
        raise NotFound("Movimiento no encontrado", id=movement_id)
    return movement


def list_movements(
    db: Session,
    principal: Principal,
    material_id: Optional[int] = None,
    tipo: Optional[Any] = None,
    desde: Optional[datetime] = None,
    hasta: Optional[datetime] = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Movement], int]:
    """
    Historial de movimientos, del más reciente al más antiguo.

    `desde` es inclusivo y `hasta` exclusivo. Sin tzinfo se toman como UTC.
    """
    authorize(principal, Operacion.LEER, Entidad.MOVIMIENTO)
    statement = select(Movement)

    if material_id is not None:
        statement = statement.where(Movement.material_id == material_id)
    if tipo is not None:
        statement = statement.where(Movement.tipo == _parse_tipo(tipo).value)
    if desde is not None:
        statement = statement.where(Movement.fecha >= as_utc(desde))
    if hasta is not None:
        statement = statement.where(Movement.fecha < as_utc(hasta))

    try:
        total = db.exec(select(func.count()).select_from(statement.subquery())).one()
        movements = db.exec(
            statement.order_by(Movement.fecha.desc(), Movement.id.desc())
            .limit(limit)
            .offset(offset)
        ).all()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    return list(movements), total
