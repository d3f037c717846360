"""
Autenticación de usuarios:
- Inicio de sesión (/auth/login) → verifica credenciales y devuelve un token JWT.
- Perfil (/auth/perfil) → datos y roles actuales del usuario autenticado.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, func, select
from sqlalchemy.exc import SQLAlchemyError
from inventario.exceptions import AuthUnavailable
from inventario.dependencies import get_current_principal
from inventario.models.database import get_db
from inventario.models.user import User
from inventario.schemas.user import UserResponse
from inventario.services.authorization import Principal
from inventario.utils.authentication import create_access_token, verify_password
from inventario.utils.logger import get_logger

router = APIRouter(prefix="/auth", tags=["Autenticación"])

logger = get_logger("auth")


@router.post("/login")
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """Autentica al usuario (el "username" del formulario es el email) y genera un token JWT."""
    try:
        statement = select(User).where(
            func.lower(User.email) == form_data.username.strip().lower()
        )
        user = db.exec(statement).first()
    except SQLAlchemyError as e:
        raise AuthUnavailable() from e

    # Mismo mensaje para email desconocido y contraseña errónea
    if not user or not verify_password(form_data.password, user.passwd):
        logger.info("auth.login_failed", email=form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciales incorrectas"
        )
    if not user.activo:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="El usuario está inactivo. Contacta al administrador para activarlo.",
        )

    access_token = create_access_token({"sub": str(user.id)})
    logger.info("auth.login", principal_id=user.id)

    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/perfil", response_model=UserResponse)
def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Retorna los datos del usuario autenticado con sus roles actuales."""
    user = db.get(User, principal.id)
    return UserResponse(
        id=user.id,
        nombre=user.nombre,
        email=user.email,
        activo=user.activo,
        roles=sorted(principal.roles, key=lambda rol: rol.value),
    )
