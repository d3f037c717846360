"""
Excepciones del dominio de inventario.

Todos los errores heredan de `InventarioError`, que lleva un `code` estable
para manejo programático, un mensaje legible y datos de contexto.

Uso:
    try:
        ledger.record_movement(db, principal, material_id, "salida", cantidad)
    except InsufficientStock as e:
        print(f"Solo hay {e.available} disponible")
"""

from decimal import Decimal
from typing import Any


class InventarioError(Exception):
    """
    Error estructurado del inventario.

    Attributes:
        code: código para manejo programático
        message: mensaje legible
        data: datos adicionales de contexto
        status_code: código HTTP equivalente
        retryable: si el cliente puede reintentar la operación completa
    """

    code = "INVENTARIO_ERROR"
    default_message = "Error de inventario"
    status_code = 500
    retryable = False

    def __init__(self, message: str | None = None, **data: Any):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        """Serializa el error (útil para respuestas de la API)."""
        return {
            "error_code": self.code,
            "message": self.message,
            "data": {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            },
            "retryable": self.retryable,
        }


class InvalidInput(InventarioError):
    code = "INVALID_INPUT"
    default_message = "Datos de entrada inválidos"
    status_code = 400


class NotFound(InventarioError):
    code = "NOT_FOUND"
    default_message = "Recurso no encontrado"
    status_code = 404


class MaterialNotFound(NotFound):
    code = "MATERIAL_NOT_FOUND"
    default_message = "Material no encontrado"


class DuplicateCode(InventarioError):
    code = "DUPLICATE_CODE"
    default_message = "El código de material ya está registrado"
    status_code = 409


class DuplicateEmail(InventarioError):
    code = "DUPLICATE_EMAIL"
    default_message = "El correo ya está registrado"
    status_code = 409


class MaterialHasMovements(InventarioError):
    code = "MATERIAL_HAS_MOVEMENTS"
    default_message = (
        "No se puede eliminar el material porque tiene movimientos registrados"
    )
    status_code = 409


class PrincipalHasMovements(InventarioError):
    code = "PRINCIPAL_HAS_MOVEMENTS"
    default_message = (
        "No se puede eliminar el usuario porque tiene movimientos registrados"
    )
    status_code = 409


class Forbidden(InventarioError):
    code = "FORBIDDEN"
    default_message = "No tienes permisos para realizar esta acción"
    status_code = 403


class InsufficientStock(InventarioError):
    """Rechazo de negocio: la salida dejaría el stock en negativo."""

    code = "INSUFFICIENT_STOCK"
    default_message = "Stock insuficiente"
    status_code = 422

    @property
    def available(self) -> Decimal:
        """Atajo para data['available']."""
        return self.data.get("available", Decimal("0"))

    @property
    def requested(self) -> Decimal:
        """Atajo para data['requested']."""
        return self.data.get("requested", Decimal("0"))


class Conflict(InventarioError):
    """Se perdió la carrera contra otra actualización concurrente del stock."""

    code = "CONFLICT"
    default_message = "Modificación concurrente detectada, reintente la operación"
    status_code = 409
    retryable = True


class AuthUnavailable(InventarioError):
    code = "AUTH_UNAVAILABLE"
    default_message = "El registro de roles no está disponible"
    status_code = 503
    retryable = True


class PersistenceUnavailable(InventarioError):
    code = "PERSISTENCE_UNAVAILABLE"
    default_message = "Error de conexión con la base de datos"
    status_code = 503
    retryable = True
