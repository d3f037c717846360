from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from inventario.dependencies import get_current_principal
from inventario.models.database import get_db
from inventario.models.user import User
from inventario.schemas.user import (
    PaginatedUserResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from inventario.services import roles as registry
from inventario.services.authorization import Principal

router = APIRouter(prefix="/usuarios", tags=["Usuarios"])


def to_response(user: User, roles) -> UserResponse:
    return UserResponse(
        id=user.id,
        nombre=user.nombre,
        email=user.email,
        activo=user.activo,
        roles=sorted(roles, key=lambda rol: rol.value),
    )


@router.get("/", response_model=PaginatedUserResponse)
def get_users(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None),
    estado: Optional[bool] = Query(None),
):
    """Lista todos los usuarios con sus roles (solo admin)."""
    users, total = registry.list_principals(
        db, principal, search=search, activo=estado, limit=limit, offset=offset
    )
    return {
        "data": [to_response(user, roles) for user, roles in users],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Solo un admin puede crear usuarios y asignar roles."""
    user, roles = registry.create_principal(
        db,
        principal,
        nombre=user_data.nombre,
        email=user_data.email,
        passwd=user_data.passwd,
        roles=user_data.roles,
        activo=user_data.activo,
    )
    return to_response(user, roles)


@router.patch("/{id}", response_model=UserResponse)
def update_user(
    id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Edita datos, estado o roles de un usuario (solo admin)."""
    user, roles = registry.update_principal(
        db, principal, id, user_update.model_dump(exclude_unset=True)
    )
    return to_response(user, roles)


@router.delete("/{id}", response_model=UserResponse)
def delete_user(
    id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Elimina un usuario siempre que no haya registrado movimientos (solo admin)."""
    user, roles = registry.delete_principal(db, principal, id)
    return to_response(user, roles)
