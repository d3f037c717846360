from datetime import date
from typing import Iterable, Literal, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from inventario.dependencies import get_current_principal
from inventario.exceptions import InvalidInput, PersistenceUnavailable
from inventario.models.database import get_db
from inventario.models.material import Material
from inventario.models.movement import Movement
from inventario.schemas.movement import (
    MovementCreate,
    MovementResponse,
    PaginatedMovementsResponse,
)
from inventario.services import ledger
from inventario.services.authorization import Principal
from inventario.services.reports import DEFAULT_TIMEZONE
from inventario.utils.dates import as_utc, local_day_bounds_utc

router = APIRouter(prefix="/movimientos", tags=["Movimientos"])


def build_responses(db: Session, movements: Iterable[Movement]) -> list[MovementResponse]:
    """Añade a cada movimiento el código, nombre y unidad de su material."""
    movements = list(movements)
    ids = {movement.material_id for movement in movements}
    if not ids:
        return []
    try:
        materiales = {
            material.id: material
            for material in db.exec(select(Material).where(Material.id.in_(ids))).all()
        }
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    return [
        MovementResponse(
            id=movement.id,
            material_id=movement.material_id,
            codigo_material=materiales[movement.material_id].codigo,
            nombre_material=materiales[movement.material_id].nombre,
            unidad=materiales[movement.material_id].unidad,
            tipo=movement.tipo,
            cantidad=movement.cantidad,
            motivo=movement.motivo,
            stock_resultante=movement.stock_resultante,
            id_usuario=movement.id_usuario,
            fecha=as_utc(movement.fecha),
        )
        for movement in movements
    ]


@router.get("/", response_model=PaginatedMovementsResponse)
def get_movements(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    material_id: Optional[int] = Query(None),
    tipo: Optional[Literal["entrada", "salida"]] = Query(None),
    fecha_desde: Optional[date] = Query(None),
    fecha_hasta: Optional[date] = Query(None),
    tz: str = Query(DEFAULT_TIMEZONE),
):
    """Historial de movimientos, del más reciente al más antiguo.
    - `fecha_desde` y `fecha_hasta` son días inclusivos en la zona horaria `tz`."""
    if fecha_desde and fecha_hasta and fecha_desde > fecha_hasta:
        raise InvalidInput("fecha_desde no puede ser posterior a fecha_hasta")

    desde = local_day_bounds_utc(fecha_desde, tz)[0] if fecha_desde else None
    hasta = local_day_bounds_utc(fecha_hasta, tz)[1] if fecha_hasta else None

    movements, total = ledger.list_movements(
        db,
        principal,
        material_id=material_id,
        tipo=tipo,
        desde=desde,
        hasta=hasta,
        limit=limit,
        offset=offset,
    )
    return {
        "data": build_responses(db, movements),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/{id}", response_model=MovementResponse)
def get_movement(
    id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Obtiene un movimiento por su ID."""
    return build_responses(db, [ledger.get_movement(db, principal, id)])[0]


@router.post("/", response_model=MovementResponse, status_code=status.HTTP_201_CREATED)
def create_movement(
    movement_data: MovementCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Registra una entrada o salida (admin o almacenero).

    - Una salida mayor que el stock disponible se rechaza con 422 y no deja rastro.
    - Ante escrituras concurrentes se reintenta internamente; si aun así no se
      puede aplicar, responde 409 y el cliente puede repetir la petición.
    """
    movement = ledger.record_movement(
        db,
        principal,
        material_id=movement_data.material_id,
        tipo=movement_data.tipo,
        cantidad=movement_data.cantidad,
        motivo=movement_data.motivo,
    )
    return build_responses(db, [movement])[0]
