from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class MaterialBase(BaseModel):
    """
    Esquema base para materiales.
    - `codigo`: se normaliza (sin espacios y en mayúsculas) antes de guardarse.
    - Los valores numéricos no negativos se validan en el catálogo.
    """

    codigo: str = Field(..., max_length=50, description="Código único, p. ej. TEL-001")
    nombre: str = Field(..., max_length=150)
    descripcion: Optional[str] = Field(None, max_length=500)
    unidad: str = Field(..., max_length=30, description="Unidad de medida (metros, kg...)")
    stock_minimo: Decimal = Field(
        Decimal("0"), description="Umbral de reabastecimiento"
    )
    precio: Decimal = Field(Decimal("0"), description="Precio unitario")


class MaterialCreate(MaterialBase):
    """Esquema para el alta. `stock` es el stock inicial del material."""

    stock: Decimal = Field(Decimal("0"), description="Stock inicial")


class MaterialUpdate(BaseModel):
    """
    Esquema para editar metadatos.
    - No incluye `stock`: el stock solo cambia con movimientos.
    - Los campos extra se dejan pasar para que el catálogo los rechace con un
      error explícito (por ejemplo, si alguien envía `stock`).
    """

    model_config = ConfigDict(extra="allow")

    nombre: Optional[str] = Field(None, max_length=150)
    descripcion: Optional[str] = Field(None, max_length=500)
    unidad: Optional[str] = Field(None, max_length=30)
    stock_minimo: Optional[Decimal] = None
    precio: Optional[Decimal] = None


class MaterialResponse(MaterialBase):
    """Esquema de respuesta; `bajo_stock` indica stock <= stock_minimo."""

    id: int
    stock: Decimal
    stock_inicial: Decimal
    bajo_stock: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PaginatedMaterialResponse(BaseModel):
    data: List[MaterialResponse]
    total: int
    limit: int
    offset: int


class MaterialReconciliation(BaseModel):
    """Resultado de comprobar el stock contra la suma de sus movimientos."""

    material_id: int
    codigo: str
    stock: Decimal
    stock_inicial: Decimal
    total_entradas: Decimal
    total_salidas: Decimal
    stock_esperado: Decimal
    movimientos: int
    consistente: bool
