# ==============================================================================
# UTILIDADES COMPARTIDAS DE SERVICIOS
# ==============================================================================
# Resultados de error y validación de valores que llegan desde la API.
# ==============================================================================

import math
from typing import Any, Dict, Optional

from snackbar_pos.models import ErrorCode


def error_result(code: ErrorCode, message: str, **extra: Any) -> Dict[str, Any]:
    """
    Construye el resultado estándar de una operación rechazada.

    Returns:
        {'ok': False, 'error': mensaje, 'error_code': código, ...extra}
    """
    result = {'ok': False, 'error': message, 'error_code': code.value}
    result.update(extra)
    return result


def parse_quantity(value: Any) -> Optional[int]:
    """
    Convierte una cantidad a entero positivo.

    Acepta int y floats enteros (2.0). Rechaza bool, texto, cero y negativos.

    Returns:
        Entero > 0 o None si no es válido
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def parse_non_negative_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return None
    return value


def parse_amount(value: Any) -> Optional[float]:
    """
    Convierte un monto a float (acepta números y texto numérico "12.50").

    Returns:
        Float o None si no es un número finito
    """
    if isinstance(value, bool) or value is None:
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount
