"""Map a FiscalDocument into the FECAESolicitar request fields."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from .cuit import validate_cuit
from .documents import FiscalDocument, VatItem
from .errors import AFIPError
from .tables import (
    CREDIT_DEBIT_NOTES,
    CURRENCY_CODES,
    WITHOUT_VAT,
    Concept,
    DocumentType,
    IdentificationType,
    VAT_RATE_CODES,
    VatCondition,
)

CENT = Decimal("0.01")
TOLERANCE = Decimal("0.01")

WireRequestFields = dict[str, Any]


class MappingError(AFIPError):
    """A domain value has no WSFEv1 equivalent; the document must be corrected."""


class UnsupportedTaxRateError(MappingError):
    pass


class UnsupportedDocumentTypeError(MappingError):
    pass


class DocumentTotalsError(MappingError):
    """Declared totals and their breakdown disagree beyond rounding."""


def _money(value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value or 0))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def vat_code(rate: Decimal) -> int:
    try:
        return VAT_RATE_CODES[Decimal(str(rate))]
    except KeyError as exc:
        raise UnsupportedTaxRateError(f"Alícuota de IVA no soportada por AFIP: {rate}%") from exc


def _close(actual: Decimal, expected: Decimal, items: int = 1) -> bool:
    return abs(actual - expected) <= TOLERANCE * max(items, 1)


def vat_breakdown(document: FiscalDocument) -> list[dict[str, Any]]:
    """Return one ``AlicIva`` row per distinct rate, in first-seen order."""

    document_type = DocumentType(document.document_type)
    items: Iterable[VatItem] = document.vat_items
    if not document.vat_items and document.vat_rate is not None:
        items = [VatItem(rate=document.vat_rate, base_amount=document.net_taxed, amount=document.vat_amount or None)]

    if document_type in WITHOUT_VAT:
        if document.vat_items or _money(document.vat_amount):
            raise MappingError("Los comprobantes clase C no discriminan IVA")
        return []

    rows: dict[int, dict[str, Any]] = {}
    for item in items:
        code = vat_code(item.rate)
        base = _money(item.base_amount)
        amount = _money(item.amount) if item.amount is not None else _money(base * Decimal(str(item.rate)) / 100)
        row = rows.setdefault(code, {"Id": code, "BaseImp": Decimal("0.00"), "Importe": Decimal("0.00")})
        row["BaseImp"] += base
        row["Importe"] += amount

    if not rows and _money(document.net_taxed):
        raise MappingError("El comprobante tiene neto gravado pero no informa alícuotas de IVA")
    return list(rows.values())


def _check_counterparty(document: FiscalDocument) -> int:
    try:
        id_type = IdentificationType(document.counterparty_id_type)
    except ValueError as exc:
        raise MappingError(f"Tipo de documento del receptor desconocido: {document.counterparty_id_type}") from exc

    raw = "".join(ch for ch in str(document.counterparty_id_number or "0") if ch.isdigit()) or "0"
    if id_type in (IdentificationType.CUIT, IdentificationType.CUIL):
        result = validate_cuit(raw)
        if not result.valid:
            raise MappingError(f"CUIT/CUIL del receptor inválido: {result.error}")
    return int(raw)


def _check_totals(document: FiscalDocument, vat_rows: list[dict[str, Any]]) -> None:
    net = _money(document.net_taxed)
    vat = _money(document.vat_amount)
    others = _money(document.other_taxes)

    if vat_rows:
        base_sum = sum((row["BaseImp"] for row in vat_rows), Decimal("0"))
        vat_sum = sum((row["Importe"] for row in vat_rows), Decimal("0"))
        if not _close(base_sum, net, len(vat_rows)):
            raise DocumentTotalsError(f"La base imponible de IVA ({base_sum}) no coincide con el neto gravado ({net})")
        if not _close(vat_sum, vat, len(vat_rows)):
            raise DocumentTotalsError(f"El IVA discriminado ({vat_sum}) no coincide con el IVA declarado ({vat})")

    tribute_sum = sum((_money(item.amount) for item in document.tributes), Decimal("0"))
    if not _close(tribute_sum, others, len(document.tributes)):
        raise DocumentTotalsError(f"Los tributos ({tribute_sum}) no coinciden con el importe declarado ({others})")

    expected_total = _money(document.non_taxed) + net + _money(document.exempt) + vat + others
    if not _close(_money(document.total), expected_total):
        raise DocumentTotalsError(f"El total ({_money(document.total)}) no coincide con la suma de importes ({expected_total})")


def validate_document(document: FiscalDocument) -> list[dict[str, Any]]:
    """Run every table lookup and total check; returns the VAT rows."""

    try:
        document_type = DocumentType(document.document_type)
    except ValueError as exc:
        raise UnsupportedDocumentTypeError(f"Tipo de comprobante no soportado: {document.document_type}") from exc

    if document_type in CREDIT_DEBIT_NOTES and not document.associated_documents:
        raise MappingError("Las notas de crédito y débito deben informar el comprobante asociado")

    try:
        concept = Concept(document.concept)
    except ValueError as exc:
        raise MappingError(f"Concepto desconocido: {document.concept}") from exc

    if concept is not Concept.GOODS and not (document.service_from and document.service_to and document.payment_due):
        raise MappingError("Los servicios requieren período de servicio y fecha de vencimiento de pago")

    if _money(document.exchange_rate) <= 0:
        raise MappingError("La cotización de la moneda debe ser mayor a cero")

    if document.receiver_vat_condition is not None:
        try:
            VatCondition(document.receiver_vat_condition)
        except ValueError as exc:
            raise MappingError(f"Condición de IVA del receptor desconocida: {document.receiver_vat_condition}") from exc

    _check_counterparty(document)
    vat_rows = vat_breakdown(document)
    _check_totals(document, vat_rows)
    return vat_rows


def build(document: FiscalDocument, next_number: int) -> WireRequestFields:
    """Return the ``FeCAEReq`` fields for a single-document request numbered ``next_number``."""

    vat_rows = validate_document(document)
    concept = Concept(document.concept)

    detail: dict[str, Any] = {
        "Concepto": int(concept),
        "DocTipo": int(document.counterparty_id_type),
        "DocNro": _check_counterparty(document),
        "CbteDesde": int(next_number),
        "CbteHasta": int(next_number),
        "CbteFch": document.issue_date,
        "ImpTotal": _money(document.total),
        "ImpTotConc": _money(document.non_taxed),
        "ImpNeto": _money(document.net_taxed),
        "ImpOpEx": _money(document.exempt),
        "ImpTrib": _money(document.other_taxes),
        "ImpIVA": _money(document.vat_amount),
        "MonId": CURRENCY_CODES.get(document.currency, document.currency),
        "MonCotiz": _money(document.exchange_rate),
        "CondicionIVAReceptorId": document.receiver_vat_condition,
        "CbtesAsoc": [
            {
                "Tipo": int(assoc.document_type),
                "PtoVta": int(assoc.point_of_sale),
                "Nro": int(assoc.number),
                "Cuit": assoc.tax_id,
                "CbteFch": assoc.issue_date,
            }
            for assoc in document.associated_documents
        ],
        "Tributos": [
            {
                "Id": int(item.code),
                "Desc": item.description or None,
                "BaseImp": _money(item.base_amount),
                "Alic": _money(item.rate),
                "Importe": _money(item.amount),
            }
            for item in document.tributes
        ],
        "Iva": vat_rows,
    }
    if concept is not Concept.GOODS:
        detail.update(
            FchServDesde=document.service_from,
            FchServHasta=document.service_to,
            FchVtoPago=document.payment_due,
        )

    return {
        "FeCabReq": {
            "CantReg": 1,
            "PtoVta": int(document.point_of_sale),
            "CbteTipo": int(document.document_type),
        },
        "FeDetReq": [detail],
    }


__all__ = [
    "DocumentTotalsError",
    "MappingError",
    "UnsupportedDocumentTypeError",
    "UnsupportedTaxRateError",
    "WireRequestFields",
    "build",
    "validate_document",
    "vat_breakdown",
    "vat_code",
]
