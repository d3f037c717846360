from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import SQLModel, Field
from inventario.utils.dates import utc_now


class Movement(SQLModel, table=True):
    """
    Registro inmutable de un cambio de stock.

    - Nunca se actualiza ni se borra.
    - Las correcciones se hacen con un movimiento compensatorio.
    """

    __tablename__ = "movimientos"
    __table_args__ = (
        CheckConstraint("cantidad > 0", name="ck_movimientos_cantidad_positiva"),
        CheckConstraint(
            "tipo IN ('entrada', 'salida')", name="ck_movimientos_tipo"
        ),
    )

    id: int = Field(default=None, primary_key=True, nullable=False)
    material_id: int = Field(
        foreign_key="materiales.id", nullable=False, index=True, ondelete="RESTRICT"
    )
    tipo: str = Field(nullable=False, max_length=10)
    cantidad: Decimal = Field(max_digits=12, decimal_places=3, nullable=False)
    motivo: Optional[str] = Field(default=None, max_length=500)
    stock_resultante: Decimal = Field(
        max_digits=12, decimal_places=3, nullable=False
    )  # Stock del material justo después de aplicar este movimiento
    id_usuario: int = Field(foreign_key="usuarios.id", nullable=False, index=True)
    fecha: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
        index=True,
    )  # Nunca anterior a la del movimiento previo del mismo material
