"""
Puerta de autorización: tabla única de (operación, entidad) → roles.

Todas las operaciones que mutan estado la consultan ANTES de tocar la base de
datos; ningún otro módulo compara roles por su cuenta.

Uso:
    authorize(principal, Operacion.REGISTRAR, Entidad.MOVIMIENTO)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from inventario.exceptions import Forbidden
from inventario.models.enums import Rol
from inventario.utils.logger import get_logger

logger = get_logger("authorization")


class Operacion(str, Enum):
    CREAR = "create"
    ACTUALIZAR = "update"
    ELIMINAR = "delete"
    LEER = "read"
    REGISTRAR = "record"


class Entidad(str, Enum):
    MATERIAL = "material"
    MOVIMIENTO = "movement"
    REPORTE = "report"
    USUARIO = "principal"


_TODOS = frozenset({Rol.ADMIN, Rol.ALMACENERO, Rol.PRODUCCION})
_GESTORES = frozenset({Rol.ADMIN, Rol.ALMACENERO})
_ADMIN = frozenset({Rol.ADMIN})

PERMISOS: dict[tuple[Operacion, Entidad], frozenset[Rol]] = {
    (Operacion.CREAR, Entidad.MATERIAL): _GESTORES,
    (Operacion.ACTUALIZAR, Entidad.MATERIAL): _GESTORES,
    (Operacion.ELIMINAR, Entidad.MATERIAL): _ADMIN,
    (Operacion.LEER, Entidad.MATERIAL): _TODOS,
    (Operacion.REGISTRAR, Entidad.MOVIMIENTO): _GESTORES,
    (Operacion.LEER, Entidad.MOVIMIENTO): _TODOS,
    (Operacion.LEER, Entidad.REPORTE): _TODOS,
    (Operacion.CREAR, Entidad.USUARIO): _ADMIN,
    (Operacion.ACTUALIZAR, Entidad.USUARIO): _ADMIN,
    (Operacion.ELIMINAR, Entidad.USUARIO): _ADMIN,
    (Operacion.LEER, Entidad.USUARIO): _ADMIN,
}


@dataclass(frozen=True)
class Principal:
    """Usuario autenticado con el conjunto de roles leído en esta petición."""

    id: int
    roles: frozenset[Rol] = field(default_factory=frozenset)
    nombre: str = ""


def allowed(roles: Iterable[Rol], operacion: Operacion, entidad: Entidad) -> bool:
    """True si alguno de `roles` permite `operacion` sobre `entidad`. Sin efectos."""
    requeridos = PERMISOS.get((operacion, entidad))
    if not requeridos:
        return False
    return not requeridos.isdisjoint(roles)


def authorize(principal: Principal, operacion: Operacion, entidad: Entidad) -> None:
    """Lanza `Forbidden` si el usuario no tiene ninguno de los roles requeridos."""
    if allowed(principal.roles, operacion, entidad):
        return
    logger.info(
        "authorization.denied",
        principal_id=principal.id,
        operation=operacion.value,
        entity=entidad.value,
    )
    raise Forbidden(operation=operacion.value, entity=entidad.value)
