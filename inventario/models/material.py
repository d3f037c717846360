from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import SQLModel, Field
from inventario.utils.dates import utc_now


class Material(SQLModel, table=True):
    """Material del catálogo. El stock solo cambia a través del ledger de movimientos."""

    __tablename__ = "materiales"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_materiales_stock_no_negativo"),
        CheckConstraint("stock_minimo >= 0", name="ck_materiales_stock_minimo"),
        CheckConstraint("precio >= 0", name="ck_materiales_precio"),
    )

    id: int = Field(default=None, primary_key=True, nullable=False)
    codigo: str = Field(unique=True, index=True, nullable=False, max_length=50)
    nombre: str = Field(nullable=False, max_length=150)
    descripcion: Optional[str] = Field(default=None, max_length=500)
    unidad: str = Field(nullable=False, max_length=30)
    stock: Decimal = Field(
        default=Decimal("0"), max_digits=12, decimal_places=3, nullable=False
    )
    stock_inicial: Decimal = Field(
        default=Decimal("0"), max_digits=12, decimal_places=3, nullable=False
    )  # Stock con el que se dio de alta, no cambia nunca
    stock_minimo: Decimal = Field(
        default=Decimal("0"), max_digits=12, decimal_places=3, nullable=False
    )
    precio: Decimal = Field(
        default=Decimal("0"), max_digits=12, decimal_places=2, nullable=False
    )
    version: int = Field(default=0, nullable=False)  # Se incrementa con cada movimiento
    created_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )
