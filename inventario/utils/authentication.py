# Autenticación de la API: JWT (JSON Web Tokens) para identificar al usuario y bcrypt para las contraseñas.
# https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
# El token solo lleva el id del usuario ("sub"); los roles se leen de la base de datos en cada petición.
from datetime import (
    datetime,
    timedelta,
    timezone,
)  # Para manejar fechas y la expiración de los tokens.
from fastapi import HTTPException, status
from passlib.context import (
    CryptContext,
)  # Para cifrar y verificar contraseñas con bcrypt.
import jwt  # Para crear y decodificar tokens JWT.
from inventario.utils.getenv import get_int_env, get_required_env

# Clave secreta para firmar JWT
SECRET_KEY = get_required_env("SECRET_KEY")

# Algoritmo de firma JWT
ALGORITHM = "HS256"

# Tiempo de expiración del token (minutos)
ACCESS_TOKEN_DURATION = get_int_env("ACCESS_TOKEN_DURATION", 30)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Genera un hash seguro (bcrypt, con sal) para la contraseña."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica si la contraseña ingresada coincide con la almacenada."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Crea un token de acceso JWT con tiempo de expiración."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_DURATION)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decodifica un token JWT y retorna los datos o lanza una excepción si es inválido."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expirado"
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido"
        )
