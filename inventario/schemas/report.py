from decimal import Decimal
from pydantic import BaseModel


class ResumenResponse(BaseModel):
    """Indicadores del panel principal, calculados en cada petición."""

    total_materiales: int
    stock_bajo: int
    usuarios_activos: int
    movimientos_hoy: int


class StockBajoItem(BaseModel):
    id: int
    codigo: str
    nombre: str
    unidad: str
    stock: Decimal
    stock_minimo: Decimal
    faltante: Decimal
