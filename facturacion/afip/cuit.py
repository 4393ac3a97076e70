"""CUIT/CUIL validation helpers (AFIP mod-11 check digit)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

WEIGHTS = (5, 4, 3, 2, 7, 6, 5, 4, 3, 2)

INDIVIDUAL_TYPES = {
    "20": "Persona Física (Masculino)",
    "23": "Persona Física (CUIL)",
    "24": "Persona Física (CUIL)",
    "25": "Persona Física (Extranjero)",
    "26": "Persona Física (Extranjero)",
    "27": "Persona Física (Femenino)",
}
COMPANY_TYPES = {
    "30": "Sociedad / Empresa",
    "33": "Sociedad / Empresa (Extranjera)",
    "34": "Sociedad / Empresa (Otros)",
}
VALID_TYPES = {**INDIVIDUAL_TYPES, **COMPANY_TYPES}

_SEPARATORS = re.compile(r"[\s-]")


@dataclass(frozen=True)
class CUITValidation:
    valid: bool
    error: Optional[str] = None
    formatted: Optional[str] = None
    type_code: Optional[str] = None
    type_label: Optional[str] = None
    check_digit: Optional[int] = None
    calculated_check_digit: Optional[int] = None


def cuit_check_digit(first_ten: str) -> int:
    """Return the verification digit for the first ten digits of a CUIT."""

    total = sum(int(digit) * weight for digit, weight in zip(first_ten, WEIGHTS))
    result = 11 - (total % 11)
    if result == 11:
        return 0
    if result == 10:
        return 9
    return result


def _digits(value: Optional[str]) -> str:
    return _SEPARATORS.sub("", str(value or ""))


def validate_cuit(value: Optional[str]) -> CUITValidation:
    raw = _digits(value)
    if not raw:
        return CUITValidation(valid=False, error="El CUIT está vacío")
    if not raw.isdigit():
        return CUITValidation(valid=False, error="El CUIT debe contener solo números")
    if len(raw) != 11:
        return CUITValidation(valid=False, error="El CUIT debe tener 11 dígitos")

    type_code = raw[:2]
    if type_code not in VALID_TYPES:
        return CUITValidation(valid=False, error=f"Tipo de CUIT inválido: {type_code}", type_code=type_code)

    expected = cuit_check_digit(raw[:10])
    actual = int(raw[10])
    if expected != actual:
        return CUITValidation(
            valid=False,
            error=f"Dígito verificador incorrecto (esperado {expected})",
            type_code=type_code,
            type_label=VALID_TYPES[type_code],
            check_digit=actual,
            calculated_check_digit=expected,
        )

    return CUITValidation(
        valid=True,
        formatted=f"{raw[:2]}-{raw[2:10]}-{raw[10]}",
        type_code=type_code,
        type_label=VALID_TYPES[type_code],
        check_digit=actual,
        calculated_check_digit=expected,
    )


def format_cuit(value: Optional[str]) -> str:
    """Format as ``XX-XXXXXXXX-X``; anything that is not 11 digits is returned untouched."""

    if value is None:
        return ""
    raw = _digits(value)
    if len(raw) != 11 or not raw.isdigit():
        return str(value)
    return f"{raw[:2]}-{raw[2:10]}-{raw[10]}"


def is_company_cuit(value: Optional[str]) -> bool:
    raw = _digits(value)
    return len(raw) == 11 and raw[:2] in COMPANY_TYPES


def is_individual_cuit(value: Optional[str]) -> bool:
    raw = _digits(value)
    return len(raw) == 11 and raw[:2] in INDIVIDUAL_TYPES


__all__ = [
    "CUITValidation",
    "cuit_check_digit",
    "format_cuit",
    "is_company_cuit",
    "is_individual_cuit",
    "validate_cuit",
]
