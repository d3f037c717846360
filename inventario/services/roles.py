"""
Registro de roles y administración de usuarios.

`roles_of()` se consulta en cada petición: los roles no se guardan en el token
ni en la sesión, así que una revocación se aplica en la siguiente comprobación.
"""

from typing import Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, func, select

from inventario.exceptions import (
    AuthUnavailable,
    DuplicateEmail,
    InvalidInput,
    NotFound,
    PersistenceUnavailable,
    PrincipalHasMovements,
)
from inventario.models.enums import Rol
from inventario.models.movement import Movement
from inventario.models.user import User, UserRole
from inventario.services.authorization import (
    Entidad,
    Operacion,
    Principal,
    authorize,
)
from inventario.utils.authentication import hash_password
from inventario.utils.logger import get_logger

logger = get_logger("roles")

_ROLES_VALIDOS = {rol.value for rol in Rol}
_CAMPOS_EDITABLES = {"nombre", "email", "activo", "roles", "passwd"}


def roles_of(db: Session, principal_id: int) -> frozenset[Rol]:
    """Roles actuales del usuario. Falla con `AuthUnavailable` si no se pueden leer."""
    try:
        rows = db.exec(
            select(UserRole.rol).where(UserRole.id_usuario == principal_id)
        ).all()
    except SQLAlchemyError as e:
        logger.error("roles.unavailable", principal_id=principal_id, error=str(e))
        raise AuthUnavailable() from e
    return frozenset(Rol(rol) for rol in rows if rol in _ROLES_VALIDOS)


def _parse_roles(roles: Iterable) -> set[Rol]:
    parsed = set()
    for rol in roles:
        value = rol.value if isinstance(rol, Rol) else str(rol).strip().lower()
        if value not in _ROLES_VALIDOS:
            raise InvalidInput(f"Rol no válido: {rol}", rol=str(rol))
        parsed.add(Rol(value))
    return parsed


def _get_user(db: Session, user_id: int) -> User:
    try:
        user = db.get(User, user_id)
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e
    if not user:
        raise NotFound("Usuario no encontrado", id=user_id)
    return user


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    statement = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        statement = statement.where(User.id != exclude_id)
    return db.exec(statement).first() is not None


def list_principals(
    db: Session,
    principal: Principal,
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[tuple[User, frozenset[Rol]]], int]:
    """Lista usuarios con sus roles (solo admin)."""
    authorize(principal, Operacion.LEER, Entidad.USUARIO)
    try:
        statement = select(User)
        if activo is not None:
            statement = statement.where(User.activo == activo)
        if search:
            search_like = f"%{search.lower()}%"
            statement = statement.where(
                func.lower(User.nombre).like(search_like)
                | func.lower(User.email).like(search_like)
            )

        total = db.exec(select(func.count()).select_from(statement.subquery())).one()
        users = db.exec(
            statement.order_by(User.nombre).limit(limit).offset(offset)
        ).all()
        return [(user, roles_of(db, user.id)) for user in users], total
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e


def create_principal(
    db: Session,
    principal: Principal,
    nombre: str,
    email: str,
    passwd: str,
    roles: Iterable = (),
    activo: bool = True,
) -> tuple[User, frozenset[Rol]]:
    """Crea un usuario y le asigna roles (solo admin)."""
    authorize(principal, Operacion.CREAR, Entidad.USUARIO)
    nombre = (nombre or "").strip()
    email = (email or "").strip().lower()
    if not nombre or not email or not passwd:
        raise InvalidInput("Nombre, email y contraseña son obligatorios")
    nuevos_roles = _parse_roles(roles)

    try:
        if _email_taken(db, email):
            raise DuplicateEmail(email=email)

        user = User(
            nombre=nombre, email=email, passwd=hash_password(passwd), activo=activo
        )
        db.add(user)
        db.flush()
        for rol in nuevos_roles:
            db.add(UserRole(id_usuario=user.id, rol=rol.value))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateEmail(email=email) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceUnavailable() from e

    db.refresh(user)
    logger.info(
        "roles.principal_created",
        principal_id=user.id,
        roles=",".join(sorted(r.value for r in nuevos_roles)),
        actor_id=principal.id,
    )
    return user, frozenset(nuevos_roles)


def update_principal(
    db: Session, principal: Principal, user_id: int, fields: dict
) -> tuple[User, frozenset[Rol]]:
    """
    Actualiza datos y/o roles de un usuario (solo admin).

    `fields` admite `nombre`, `email`, `activo`, `roles` y `passwd`.
    Si viene `roles`, reemplaza el conjunto completo.
    """
    authorize(principal, Operacion.ACTUALIZAR, Entidad.USUARIO)
    desconocidos = set(fields) - _CAMPOS_EDITABLES
    if desconocidos:
        raise InvalidInput(
            "Campos no editables: " + ", ".join(sorted(desconocidos)),
            campos=sorted(desconocidos),
        )

    user = _get_user(db, user_id)
    nuevos_roles = _parse_roles(fields["roles"]) if fields.get("roles") is not None else None

    if fields.get("activo") is False and user.id == principal.id:
        raise InvalidInput("No puedes desactivar tu propio usuario")

    email = fields["email"].strip().lower() if fields.get("email") else None
    try:
        if email and _email_taken(db, email, exclude_id=user.id):
            raise DuplicateEmail(email=email)
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    try:
        if fields.get("nombre"):
            user.nombre = fields["nombre"].strip()
        if email:
            user.email = email
        if fields.get("activo") is not None:
            user.activo = fields["activo"]
        if fields.get("passwd"):
            user.passwd = hash_password(fields["passwd"])
        db.add(user)

        if nuevos_roles is not None:
            db.exec(delete(UserRole).where(UserRole.id_usuario == user.id))
            for rol in nuevos_roles:
                db.add(UserRole(id_usuario=user.id, rol=rol.value))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateEmail(email=fields.get("email")) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceUnavailable() from e

    db.refresh(user)
    roles = roles_of(db, user.id)
    logger.info(
        "roles.principal_updated",
        principal_id=user.id,
        fields=",".join(sorted(fields)),
        actor_id=principal.id,
    )
    return user, roles


def delete_principal(
    db: Session, principal: Principal, user_id: int
) -> tuple[User, frozenset[Rol]]:
    """Elimina un usuario siempre que no haya registrado ningún movimiento."""
    authorize(principal, Operacion.ELIMINAR, Entidad.USUARIO)
    if user_id == principal.id:
        raise InvalidInput("No puedes eliminar tu propio usuario")

    user = _get_user(db, user_id)
    try:
        has_movements = db.exec(
            select(Movement.id).where(Movement.id_usuario == user_id)
        ).first()
    except SQLAlchemyError as e:
        raise PersistenceUnavailable() from e

    if has_movements is not None:
        raise PrincipalHasMovements(id=user_id)

    roles = roles_of(db, user_id)

    try:
        db.exec(delete(UserRole).where(UserRole.id_usuario == user_id))
        db.delete(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceUnavailable() from e

    logger.info("roles.principal_deleted", principal_id=user_id, actor_id=principal.id)
    return user, roles
