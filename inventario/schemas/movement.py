from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Literal, List, Optional


class MovementCreate(BaseModel):
    """Esquema para registrar una entrada o salida de un material.
    - El usuario que la registra es siempre el autenticado."""

    material_id: int = Field(..., description="ID del material")
    tipo: Literal["entrada", "salida"] = Field(
        ..., description="Debe ser 'entrada' o 'salida'"
    )
    cantidad: Decimal = Field(..., description="Cantidad (mayor a 0)")
    motivo: Optional[str] = Field(
        None, max_length=500, description="Motivo del movimiento (opcional)"
    )


class MovementResponse(BaseModel):
    """Esquema para responder con los datos de un movimiento."""

    id: int
    material_id: int
    codigo_material: str
    nombre_material: str
    unidad: str
    tipo: str
    cantidad: Decimal
    motivo: Optional[str] = None
    stock_resultante: Decimal
    id_usuario: int
    fecha: datetime

    class Config:
        from_attributes = True


class PaginatedMovementsResponse(BaseModel):
    data: List[MovementResponse]
    total: int
    limit: int
    offset: int
