"""Fixed WSFEv1 code tables (FEParamGet* equivalents)."""

from __future__ import annotations

from decimal import Decimal
from enum import IntEnum


class DocumentType(IntEnum):
    """Comprobante types (``CbteTipo``)."""

    FACTURA_A = 1
    NOTA_DEBITO_A = 2
    NOTA_CREDITO_A = 3
    FACTURA_B = 6
    NOTA_DEBITO_B = 7
    NOTA_CREDITO_B = 8
    FACTURA_C = 11
    NOTA_DEBITO_C = 12
    NOTA_CREDITO_C = 13
    FACTURA_E = 19
    NOTA_DEBITO_E = 20
    NOTA_CREDITO_E = 21
    FACTURA_M = 51
    NOTA_DEBITO_M = 52
    NOTA_CREDITO_M = 53


CREDIT_DEBIT_NOTES = frozenset(
    {
        DocumentType.NOTA_DEBITO_A,
        DocumentType.NOTA_CREDITO_A,
        DocumentType.NOTA_DEBITO_B,
        DocumentType.NOTA_CREDITO_B,
        DocumentType.NOTA_DEBITO_C,
        DocumentType.NOTA_CREDITO_C,
        DocumentType.NOTA_DEBITO_E,
        DocumentType.NOTA_CREDITO_E,
        DocumentType.NOTA_DEBITO_M,
        DocumentType.NOTA_CREDITO_M,
    }
)

# Class C (monotributo) documents never discriminate VAT.
WITHOUT_VAT = frozenset({DocumentType.FACTURA_C, DocumentType.NOTA_DEBITO_C, DocumentType.NOTA_CREDITO_C})


class IdentificationType(IntEnum):
    """Counterparty identification types (``DocTipo``)."""

    CUIT = 80
    CUIL = 86
    CDI = 87
    LIBRETA_ENROLAMIENTO = 89
    LIBRETA_CIVICA = 90
    CI_EXTRANJERA = 91
    PASAPORTE = 94
    DNI = 96
    CONSUMIDOR_FINAL = 99


class Concept(IntEnum):
    GOODS = 1
    SERVICES = 2
    GOODS_AND_SERVICES = 3


# VAT rate (percent) -> ``AlicIva.Id``
VAT_RATE_CODES = {
    Decimal("0"): 3,
    Decimal("10.5"): 4,
    Decimal("21"): 5,
    Decimal("27"): 6,
    Decimal("5"): 8,
    Decimal("2.5"): 9,
}

CURRENCY_CODES = {
    "ARS": "PES",
    "USD": "DOL",
    "EUR": "060",
    "BRL": "012",
}


class VatCondition(IntEnum):
    """Receiver VAT condition (``CondicionIVAReceptorId``)."""

    RESPONSABLE_INSCRIPTO = 1
    EXENTO = 4
    CONSUMIDOR_FINAL = 5
    MONOTRIBUTO = 6
    NO_CATEGORIZADO = 7
    PROVEEDOR_EXTERIOR = 8
    CLIENTE_EXTERIOR = 9
    LIBERADO = 10
    MONOTRIBUTISTA_SOCIAL = 13
    NO_ALCANZADO = 15
    MONOTRIBUTO_TRABAJADOR_INDEPENDIENTE = 16


__all__ = [
    "CREDIT_DEBIT_NOTES",
    "CURRENCY_CODES",
    "Concept",
    "DocumentType",
    "IdentificationType",
    "VAT_RATE_CODES",
    "VatCondition",
    "WITHOUT_VAT",
]
