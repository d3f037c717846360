from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from inventario.models.enums import Rol


class UserBase(BaseModel):
    """
    Esquema base para usuarios.
    - `EmailStr` valida que el correo tenga formato correcto.
    """

    nombre: str = Field(
        ..., min_length=3, max_length=100, description="Nombre del usuario"
    )
    email: EmailStr = Field(
        ..., max_length=100, description="Correo electrónico válido"
    )


class UserCreate(UserBase):
    """
    Esquema para registrar usuarios (solo admin).
    - `passwd`: mínimo 8 caracteres.
    - `roles`: cero o más de admin / almacenero / produccion.
    """

    passwd: str = Field(
        ...,
        min_length=8,
        max_length=72,
        description="Contraseña segura (mínimo 8 caracteres)",
    )
    roles: List[Rol] = Field(default=[], description="Roles asignados")
    activo: bool = Field(default=True, description="Estado activo/inactivo")


class UserUpdate(BaseModel):
    """
    Esquema para actualizar usuarios.
    - Si se envía `roles`, reemplaza el conjunto completo de roles.
    """

    nombre: Optional[str] = Field(
        None, min_length=3, max_length=100, description="Nuevo nombre del usuario"
    )
    email: Optional[EmailStr] = Field(
        None, max_length=100, description="Nuevo email del usuario"
    )
    roles: Optional[List[Rol]] = None
    activo: Optional[bool] = None
    passwd: Optional[str] = Field(
        None, min_length=8, max_length=72, description="Nueva contraseña (opcional)"
    )


class UserResponse(UserBase):
    """
    Esquema para respuestas de usuario.
    - No incluye `passwd` por seguridad.
    """

    id: int
    activo: bool
    roles: List[Rol]


class PaginatedUserResponse(BaseModel):
    data: List[UserResponse]
    total: int
    limit: int
    offset: int
