from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from inventario.dependencies import get_current_principal
from inventario.models.database import get_db
from inventario.routers.movements import build_responses
from inventario.schemas.movement import MovementResponse
from inventario.schemas.report import ResumenResponse, StockBajoItem
from inventario.services import reports
from inventario.services.authorization import Principal

router = APIRouter(prefix="/reportes", tags=["Reportes"])


@router.get("/resumen", response_model=ResumenResponse)
def get_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    tz: Optional[str] = Query(None, description="Zona horaria para 'hoy'"),
):
    """Total de materiales, stock bajo, usuarios activos y movimientos de hoy."""
    return reports.summary(db, principal, tz)


@router.get("/stock-bajo", response_model=List[StockBajoItem])
def get_low_stock(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Materiales con stock <= stock mínimo, los más críticos primero."""
    return [
        StockBajoItem(
            id=material.id,
            codigo=material.codigo,
            nombre=material.nombre,
            unidad=material.unidad,
            stock=material.stock,
            stock_minimo=material.stock_minimo,
            faltante=material.stock_minimo - material.stock,
        )
        for material in reports.low_stock(db, principal)
    ]


@router.get("/actividad-reciente", response_model=List[MovementResponse])
def get_recent_activity(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    limit: int = Query(5, ge=1, le=100),
):
    """Últimos movimientos registrados."""
    rows = reports.recent_activity(db, principal, limit)
    return build_responses(db, [movement for movement, *_ in rows])
