from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from inventario.exceptions import AuthUnavailable
from inventario.models.database import get_db
from inventario.models.user import User
from inventario.services.authorization import Principal
from inventario.services.roles import roles_of
from inventario.utils.authentication import decode_access_token

# Esquema OAuth2: el token se obtiene en /auth/login
oauth2 = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_principal(
    token: str = Depends(oauth2), db: Session = Depends(get_db)
) -> Principal:
    """
    Obtiene el usuario autenticado a partir del token JWT.
    - El token solo identifica al usuario; los roles se leen en cada petición,
      así una revocación surte efecto de inmediato.
    """
    payload = decode_access_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido"
        )

    try:
        user = db.get(User, int(user_id))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido"
        )
    except SQLAlchemyError as e:
        raise AuthUnavailable() from e

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario no encontrado o eliminado",
        )
    if not user.activo:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="El usuario está inactivo. Contacta al administrador para activarlo.",
        )

    return Principal(id=user.id, roles=roles_of(db, user.id), nombre=user.nombre)
