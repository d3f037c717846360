"""
Enums del modelo de inventario.
"""

from enum import Enum


class Rol(str, Enum):
    """
    Roles que puede tener un usuario (cero o más).

    ADMIN:      todo, incluida la gestión de usuarios y el borrado de materiales.
    ALMACENERO: registra movimientos y mantiene el catálogo (stock-handler).
    PRODUCCION: solo consulta materiales, movimientos y reportes (viewer).
    """

    ADMIN = "admin"
    ALMACENERO = "almacenero"
    PRODUCCION = "produccion"


class TipoMovimiento(str, Enum):
    """Tipo de movimiento: entrada suma al stock, salida lo resta."""

    ENTRADA = "entrada"
    SALIDA = "salida"
