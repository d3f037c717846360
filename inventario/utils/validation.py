from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from inventario.exceptions import InvalidInput

# Las columnas numéricas son NUMERIC(12, x)
MAX_DIGITS = 12


def normalize_code(codigo: Optional[str]) -> str:
    """Normaliza el código de un material:
    - Elimina todos los espacios (también los internos)
    - Convierte a mayúsculas
    " tel-001 " → "TEL-001"
    """
    return "".join((codigo or "").split()).upper()


def require_text(value: Optional[str], campo: str, max_length: int) -> str:
    """Texto obligatorio: sin espacios sobrantes, no vacío y con longitud acotada."""
    texto = (value or "").strip()
    if not texto:
        raise InvalidInput(f"El campo '{campo}' es obligatorio", campo=campo)
    if len(texto) > max_length:
        raise InvalidInput(
            f"El campo '{campo}' admite como máximo {max_length} caracteres",
            campo=campo,
        )
    return texto


def optional_text(value: Optional[str], campo: str, max_length: int) -> Optional[str]:
    """Texto opcional; una cadena en blanco se guarda como None."""
    if value is None:
        return None
    texto = str(value).strip()
    if not texto:
        return None
    if len(texto) > max_length:
        raise InvalidInput(
            f"El campo '{campo}' admite como máximo {max_length} caracteres",
            campo=campo,
            length=len(texto),
        )
    return texto


def parse_decimal(
    value: Any, campo: str, *, positive: bool = False, decimal_places: int = 3
) -> Decimal:
    """
    Convierte `value` en un Decimal finito y no negativo (estrictamente positivo
    si `positive`), con como máximo `decimal_places` decimales.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"El campo '{campo}' debe ser numérico", campo=campo)
    try:
        numero = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInput(f"El campo '{campo}' debe ser numérico", campo=campo)

    if not numero.is_finite():
        raise InvalidInput(f"El campo '{campo}' debe ser finito", campo=campo)
    if positive and numero <= 0:
        raise InvalidInput(
            f"El campo '{campo}' debe ser mayor que 0", campo=campo, value=numero
        )
    if numero < 0:
        raise InvalidInput(
            f"El campo '{campo}' no puede ser negativo", campo=campo, value=numero
        )
    if numero >= Decimal(10) ** (MAX_DIGITS - decimal_places):
        raise InvalidInput(
            f"El campo '{campo}' excede el máximo permitido", campo=campo, value=numero
        )

    escala = Decimal(1).scaleb(-decimal_places)
    if numero != numero.quantize(escala):
        raise InvalidInput(
            f"El campo '{campo}' admite como máximo {decimal_places} decimales",
            campo=campo,
            value=numero,
        )
    return numero.quantize(escala)
