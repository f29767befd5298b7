"""Formateo puro del campo de acta ``NNNNNN-NN-L``.

English: Pure formatting of the acta field. Each call receives the previous
value, the new raw input and the cursor position, and returns the formatted
value with the new cursor position. A rejected edit returns the previous
value unchanged.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from recuento.core.models import Category

ACTA_MAX_LENGTH = 11
_INVALID_CHARS = re.compile(r"[^0-9A-Z\-]")
_NON_DIGITS = re.compile(r"[^0-9]")
_NON_LETTERS = re.compile(r"[^A-Z]")


def _digits(value: str) -> str:
    return _NON_DIGITS.sub("", value)


def _clamp(cursor: int, value: str) -> int:
    return max(0, min(cursor, len(value)))


def format_acta_input(previous: str, raw: str, cursor: int) -> Tuple[str, int]:
    """Normaliza la entrada del acta insertando guiones automáticamente.

    Reglas:
        - Mayúsculas; se descartan caracteres fuera de ``0-9``, ``A-Z`` y ``-``.
        - Primer bloque: hasta 6 dígitos; al completar 6 se agrega ``-``.
        - Segundo bloque: hasta 2 dígitos; al completar 2 se agrega ``-``.
        - Tercer bloque: una letra.
        - Más de tres bloques, o más de 6 dígitos sin guion, rechaza la edición.

    English:
        Normalize acta input inserting dashes automatically. Too many blocks,
        or more than 6 digits before the first dash, rejects the edit.
    """
    upper = raw.upper()
    value = _INVALID_CHARS.sub("", upper)
    parts = value.split("-")
    normal_edit = abs(len(upper) - len(previous)) == 1 and cursor <= 6
    rejected = (previous, _clamp(cursor, previous))

    if len(parts) == 1:
        digits = _digits(parts[0])
        if len(digits) > 6:
            return rejected
        formatted = digits
        new_cursor = cursor
        if len(digits) == 6 and "-" not in upper:
            formatted = f"{digits}-"
            new_cursor = len(formatted)
    elif len(parts) == 2:
        first = _digits(parts[0])[:6]
        second = _digits(parts[1])[:2]
        if not first:
            return rejected
        formatted = f"{first}-{second}"
        new_cursor = cursor if normal_edit else len(formatted)
        if len(second) == 2 and not upper.endswith("-"):
            formatted = f"{formatted}-"
            new_cursor = len(formatted)
    elif len(parts) == 3:
        first = _digits(parts[0])[:6]
        second = _digits(parts[1])[:2]
        third = _NON_LETTERS.sub("", parts[2])[:1]
        if not first:
            return rejected
        formatted = f"{first}-{second}-{third}"
        new_cursor = cursor if normal_edit else len(formatted)
    else:
        return rejected

    if len(formatted) > ACTA_MAX_LENGTH:
        return rejected
    return formatted, _clamp(new_cursor, formatted)


def backspace_acta_input(value: str, cursor: int) -> Tuple[str, int]:
    """Borra hacia atrás; tras un guion borra también el carácter previo.

    English: Backspace. Right after a dash it removes the dash together with
    the character before it, so the automatic dash is not re-inserted.
    """
    cursor = _clamp(cursor, value)
    if cursor == 0:
        return value, 0
    if value[cursor - 1] == "-":
        start = max(cursor - 2, 0)
        return value[:start] + value[cursor:], start
    return value[: cursor - 1] + value[cursor:], cursor - 1


def mesa_from_acta(value: str) -> Optional[str]:
    """Primer bloque del acta si aún es un número de mesa posible.

    English: First acta block, when it can still be a mesa number.
    """
    first = value.split("-", 1)[0]
    if first and first.isdigit() and len(first) <= 6:
        return first
    return None


def build_acta_number(mesa_number: str, jee_id: str, category: Category) -> str:
    """Genera ``{mesa6}-{jee}-{letra}`` / Build ``{mesa6}-{jee}-{letter}``."""
    mesa = str(mesa_number).strip()
    if not mesa or not jee_id:
        raise ValueError("mesa_number and jee_id are required to build an acta number")
    return f"{mesa.zfill(6)}-{jee_id}-{category.code}"
