"""Domain records exchanged with the authorization client."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple

from .tables import Concept


@dataclass(frozen=True)
class VatItem:
    """Taxable base at a given VAT rate (percent). ``amount`` defaults to base * rate."""

    rate: Decimal
    base_amount: Decimal
    amount: Optional[Decimal] = None


@dataclass(frozen=True)
class OtherTributeItem:
    code: int
    base_amount: Decimal
    rate: Decimal
    amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class AssociatedDocument:
    document_type: int
    point_of_sale: int
    number: int
    tax_id: Optional[str] = None
    issue_date: Optional[dt.date] = None


@dataclass
class FiscalDocument:
    """Invoice, debit note or credit note awaiting authorization."""

    document_type: int
    point_of_sale: int
    issue_date: dt.date
    counterparty_id_type: int
    counterparty_id_number: str
    total: Decimal
    net_taxed: Decimal = Decimal("0")
    non_taxed: Decimal = Decimal("0")
    exempt: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    other_taxes: Decimal = Decimal("0")
    concept: Concept = Concept.GOODS
    currency: str = "PES"
    exchange_rate: Decimal = Decimal("1")
    service_from: Optional[dt.date] = None
    service_to: Optional[dt.date] = None
    payment_due: Optional[dt.date] = None
    vat_rate: Optional[Decimal] = None
    vat_items: list[VatItem] = field(default_factory=list)
    tributes: list[OtherTributeItem] = field(default_factory=list)
    associated_documents: list[AssociatedDocument] = field(default_factory=list)
    receiver_vat_condition: Optional[int] = None
    reference: Optional[str] = None


class Outcome(str, Enum):
    APPROVED = "A"
    REJECTED = "R"
    PARTIAL = "P"


@dataclass(frozen=True)
class Message:
    """Observation or error exactly as returned by AFIP."""

    code: int
    message: str

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "Message":
        return cls(code=int(data.get("Code") or 0), message=str(data.get("Msg") or ""))

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


def messages(items: Iterable[Mapping[str, Any]]) -> Tuple[Message, ...]:
    return tuple(Message.from_wire(item) for item in items or ())


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of one FECAESolicitar call for one document."""

    outcome: Outcome
    document_type: int
    point_of_sale: int
    number: int
    authorization_code: Optional[str] = None
    authorization_expiry: Optional[dt.date] = None
    document_date: Optional[dt.date] = None
    observations: Tuple[Message, ...] = ()
    errors: Tuple[Message, ...] = ()
    events: Tuple[Message, ...] = ()

    @property
    def approved(self) -> bool:
        return self.outcome is not Outcome.REJECTED and bool(self.authorization_code)

    def summary(self) -> str:
        if self.approved:
            return f"CAE {self.authorization_code} (vence {self.authorization_expiry})"
        notes = self.errors or self.observations
        return "; ".join(f"{item.code}: {item.message}" for item in notes) or "Rechazado sin detalle"


__all__ = [
    "AssociatedDocument",
    "AuthorizationResult",
    "FiscalDocument",
    "Message",
    "OtherTributeItem",
    "Outcome",
    "VatItem",
    "messages",
]
