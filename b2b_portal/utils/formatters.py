"""
Utilidades de formateo para emails y respuestas.
Formato chileno: separador de miles punto (.), pesos sin decimales.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union


def num_cl(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Formatea un número entero en estilo chileno.

    Examples:
        num_cl(1500) -> "1.500"
        num_cl(16806.72) -> "16.807"
        num_cl(-3193) -> "-3.193"
        num_cl(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign_str = '-' if num < 0 else ''
    integer_part = str(abs(num))

    # Agrupar de a 3 desde la derecha
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return sign_str + '.'.join(groups)[::-1]


def money_cl(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Formatea un monto en pesos chilenos.

    Examples:
        money_cl(16000) -> "$16.000"
        money_cl(None) -> "$0"
    """
    formatted = num_cl(value)
    if formatted == "-":
        return "$0"
    if formatted.startswith('-'):
        return f"-${formatted[1:]}"
    return f"${formatted}"
