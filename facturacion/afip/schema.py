"""WSFEv1 message layouts described as data.

Each operation lists its request and result elements in wire order. The
codec walks these tuples to serialize requests and to decode responses,
so field order and optionality live in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class Kind(Enum):
    TEXT = "text"
    INT = "int"
    AMOUNT = "amount"  # two decimal digits
    DATE = "date"  # YYYYMMDD


@dataclass(frozen=True)
class Field:
    name: str
    kind: Kind = Kind.TEXT
    optional: bool = False


@dataclass(frozen=True)
class Group:
    name: str
    fields: Tuple["Node", ...]
    optional: bool = False


@dataclass(frozen=True)
class Repeated:
    """A container element holding zero or more ``item`` elements; omitted when empty."""

    name: str
    item: str
    fields: Tuple["Node", ...]


Node = Union[Field, Group, Repeated]


@dataclass(frozen=True)
class Operation:
    name: str
    request: Tuple[Node, ...]
    result: Tuple[Node, ...]
    authenticated: bool = True


T, I, A, D = Kind.TEXT, Kind.INT, Kind.AMOUNT, Kind.DATE

AUTH = Group("Auth", (Field("Token"), Field("Sign"), Field("Cuit", I)))

MESSAGE = (Field("Code", I), Field("Msg"))
ERRORS = Repeated("Errors", "Err", MESSAGE)
EVENTS = Repeated("Events", "Evt", MESSAGE)
OBSERVATIONS = Repeated("Observaciones", "Obs", MESSAGE)

ASSOCIATED_DOCUMENTS = Repeated(
    "CbtesAsoc",
    "CbteAsoc",
    (
        Field("Tipo", I),
        Field("PtoVta", I),
        Field("Nro", I),
        Field("Cuit", T, optional=True),
        Field("CbteFch", D, optional=True),
    ),
)

TRIBUTES = Repeated(
    "Tributos",
    "Tributo",
    (
        Field("Id", I),
        Field("Desc", T, optional=True),
        Field("BaseImp", A),
        Field("Alic", A),
        Field("Importe", A),
    ),
)

VAT_ITEMS = Repeated(
    "Iva",
    "AlicIva",
    (Field("Id", I), Field("BaseImp", A), Field("Importe", A)),
)

HEADER_FIELDS = (Field("CantReg", I), Field("PtoVta", I), Field("CbteTipo", I))

DETAIL_AMOUNTS = (
    Field("ImpTotal", A),
    Field("ImpTotConc", A),
    Field("ImpNeto", A),
    Field("ImpOpEx", A),
    Field("ImpTrib", A),
    Field("ImpIVA", A),
    Field("FchServDesde", D, optional=True),
    Field("FchServHasta", D, optional=True),
    Field("FchVtoPago", D, optional=True),
    Field("MonId"),
    Field("MonCotiz", A),
)

DETAIL_REQUEST = (
    Field("Concepto", I),
    Field("DocTipo", I),
    Field("DocNro", I),
    Field("CbteDesde", I),
    Field("CbteHasta", I),
    Field("CbteFch", D),
    *DETAIL_AMOUNTS,
    Field("CondicionIVAReceptorId", I, optional=True),
    ASSOCIATED_DOCUMENTS,
    TRIBUTES,
    VAT_ITEMS,
)

DETAIL_RESPONSE = (
    Field("Concepto", I),
    Field("DocTipo", I),
    Field("DocNro", I),
    Field("CbteDesde", I),
    Field("CbteHasta", I),
    Field("CbteFch", D),
    Field("Resultado"),
    OBSERVATIONS,
    Field("CAE", T, optional=True),
    Field("CAEFchVto", D, optional=True),
)

FECAESolicitar = Operation(
    name="FECAESolicitar",
    request=(
        AUTH,
        Group("FeCAEReq", (Group("FeCabReq", HEADER_FIELDS), Repeated("FeDetReq", "FECAEDetRequest", DETAIL_REQUEST))),
    ),
    result=(
        Group(
            "FeCabResp",
            (
                Field("Cuit", I),
                Field("PtoVta", I),
                Field("CbteTipo", I),
                Field("FchProceso"),
                Field("CantReg", I),
                Field("Resultado"),
                Field("Reproceso", T, optional=True),
            ),
            optional=True,
        ),
        Repeated("FeDetResp", "FECAEDetResponse", DETAIL_RESPONSE),
        EVENTS,
        ERRORS,
    ),
)

FECompUltimoAutorizado = Operation(
    name="FECompUltimoAutorizado",
    request=(AUTH, Field("PtoVta", I), Field("CbteTipo", I)),
    result=(Field("PtoVta", I), Field("CbteTipo", I), Field("CbteNro", I), ERRORS, EVENTS),
)

FECompConsultar = Operation(
    name="FECompConsultar",
    request=(AUTH, Group("FeCompConsReq", (Field("CbteTipo", I), Field("CbteNro", I), Field("PtoVta", I)))),
    result=(
        Group(
            "ResultGet",
            (
                Field("Concepto", I),
                Field("DocTipo", I),
                Field("DocNro", I),
                Field("CbteDesde", I),
                Field("CbteHasta", I),
                Field("CbteFch", D),
                *DETAIL_AMOUNTS,
                ASSOCIATED_DOCUMENTS,
                TRIBUTES,
                VAT_ITEMS,
                Field("Resultado"),
                Field("CodAutorizacion"),
                Field("EmisionTipo"),
                Field("FchVto", D),
                Field("FchProceso"),
                OBSERVATIONS,
                Field("PtoVta", I),
                Field("CbteTipo", I),
            ),
            optional=True,
        ),
        ERRORS,
        EVENTS,
    ),
)

FEDummy = Operation(
    name="FEDummy",
    request=(),
    result=(Field("AppServer"), Field("DbServer"), Field("AuthServer")),
    authenticated=False,
)

OPERATIONS = {op.name: op for op in (FECAESolicitar, FECompUltimoAutorizado, FECompConsultar, FEDummy)}


__all__ = [
    "Field",
    "Group",
    "Kind",
    "Node",
    "OPERATIONS",
    "Operation",
    "Repeated",
]
