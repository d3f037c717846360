from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from inventario.utils.dates import utc_now


class User(SQLModel, table=True):
    __tablename__ = "usuarios"

    id: int = Field(default=None, primary_key=True, nullable=False)
    nombre: str = Field(nullable=False, max_length=100)
    email: str = Field(unique=True, nullable=False, index=True, max_length=100)
    passwd: str = Field(nullable=False)
    activo: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )


class UserRole(SQLModel, table=True):
    """Asignación de un rol a un usuario. Un usuario puede tener varios roles."""

    __tablename__ = "usuario_roles"

    id_usuario: int = Field(
        foreign_key="usuarios.id", primary_key=True, ondelete="CASCADE"
    )
    rol: str = Field(primary_key=True, max_length=20)
