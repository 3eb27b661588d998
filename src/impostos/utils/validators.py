from __future__ import annotations

import re
from decimal import Decimal

from impostos.services.exceptions import ValidationError
from impostos.services.rounding import to_decimal

_VALID_UF = frozenset({
    "AC", "AL", "AM", "AP", "BA", "CE", "DF", "ES", "GO",
    "MA", "MG", "MS", "MT", "PA", "PB", "PE", "PI", "PR",
    "RJ", "RN", "RO", "RR", "RS", "SC", "SE", "SP", "TO",
})


def validate_non_negative(value: object, field: str) -> Decimal:
    """Convert ``value`` to Decimal and reject negatives.

    Never clamps: a negative input raises ValidationError naming the field.
    """
    d = to_decimal(value, field)
    if d < 0:
        raise ValidationError(field, f"nao pode ser negativo: {d}")
    return d


def validate_percent(value: object, field: str) -> Decimal:
    """Validate a percentage rate (0 or more; MVA can exceed 100)."""
    return validate_non_negative(value, field)


def validate_quantity(value: object, field: str = "quantidade") -> Decimal:
    d = to_decimal(value, field)
    if d <= 0:
        raise ValidationError(field, f"deve ser positiva: {d}")
    return d


def validate_uf(value: str, field: str = "uf") -> str:
    """Validate and normalize a Brazilian state code (2 letters)."""
    uf = str(value).strip().upper()
    if uf not in _VALID_UF:
        raise ValidationError(field, f"UF invalida: '{value}'")
    return uf


def validate_ncm(value: object, field: str = "ncm") -> str:
    """Validate an NCM code or prefix: 2 to 8 numeric digits, dots allowed."""
    ncm = str(value).strip().replace(".", "")
    if not re.fullmatch(r"\d{2,8}", ncm):
        raise ValidationError(field, f"NCM deve ter de 2 a 8 digitos: '{value}'")
    return ncm


_TRUE_FLAGS = frozenset({"true", "sim", "s", "yes", "1"})
_FALSE_FLAGS = frozenset({"false", "nao", "não", "n", "no", "0", ""})


def validate_flag(value: object, field: str) -> bool:
    """Parse a yes/no flag strictly.

    Accepts real bools, 0/1 and the strings true/false, sim/nao, yes/no.
    Anything else raises instead of being read as truthy.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_FLAGS:
            return True
        if text in _FALSE_FLAGS:
            return False
    raise ValidationError(field, f"valor booleano invalido: {value!r}")


def validate_product_code(value: object, field: str = "ncm") -> str:
    """Validate an MVA product key: an NCM (digits and dots) or a category code.

    NCMs are normalized without dots; category codes (letters, digits, ``_``,
    ``-``, starting with a letter) are upper-cased.
    """
    text = str(value).strip()
    if re.fullmatch(r"[\d.]+", text):
        return validate_ncm(text, field)
    if not re.fullmatch(r"[A-Za-z][A-Za-z0-9_-]{0,39}", text):
        raise ValidationError(field, f"NCM ou codigo de categoria invalido: '{value}'")
    return text.upper()
