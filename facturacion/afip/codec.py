"""SOAP framing for WSAA and WSFEv1 messages."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Mapping, MutableMapping, Optional, Sequence

from django.utils.dateparse import parse_datetime
from lxml import etree

from .errors import AFIPError
from .schema import OPERATIONS, Field, Group, Kind, Node, Operation, Repeated

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
WSFE_NS = "http://ar.gov.afip.dif.FEV1/"
WSAA_NS = "http://wsaa.view.sua.dgi.gov.ar"

NUMBER_FORMAT = Decimal("0.01")
DATE_FORMAT = "%Y%m%d"


class ProtocolError(AFIPError):
    """The response is missing its expected structure (not a business rejection)."""

    def __init__(self, message: str, errors: Iterable[Mapping[str, Any]] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


@dataclass
class Envelope:
    """Decoded SOAP body: operation name plus its fields keyed by wire name."""

    operation: str
    is_response: bool
    fields: MutableMapping[str, Any] = field(default_factory=dict)

    @property
    def payload(self) -> dict[str, Any]:
        return {key: value for key, value in self.fields.items() if key != "Auth"}


# Values ---------------------------------------------------------------------------


def format_amount(value: Decimal | float | int | str | None) -> str:
    if value is None or value == "":
        value = Decimal("0")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return f"{value.quantize(NUMBER_FORMAT, rounding=ROUND_HALF_UP):.2f}"


def format_date(value: dt.date | str) -> str:
    if isinstance(value, (dt.date, dt.datetime)):
        return value.strftime(DATE_FORMAT)
    text = str(value)
    if len(text) != 8 or not text.isdigit():
        raise ProtocolError(f"Fecha inválida para AFIP (se espera AAAAMMDD): {value!r}")
    return text


def parse_date(text: str) -> dt.date:
    return dt.datetime.strptime(text, DATE_FORMAT).date()


def _format_value(spec: Field, value: Any) -> str:
    if spec.kind is Kind.AMOUNT:
        return format_amount(value)
    if spec.kind is Kind.DATE:
        return format_date(value)
    if spec.kind is Kind.INT:
        return str(int(value))
    return str(value)


def _parse_value(spec: Field, text: Optional[str]) -> Any:
    text = (text or "").strip()
    if not text or text.upper() == "NULL":
        return None
    try:
        if spec.kind is Kind.AMOUNT:
            return Decimal(text)
        if spec.kind is Kind.DATE:
            return parse_date(text)
        if spec.kind is Kind.INT:
            return int(text)
    except (InvalidOperation, ValueError) as exc:
        raise ProtocolError(f"Valor inválido en {spec.name}: {text!r}") from exc
    return text


# Tree helpers ---------------------------------------------------------------------


def _elements(parent: etree._Element) -> Iterator[etree._Element]:
    for child in parent:
        if isinstance(child.tag, str):
            yield child


def _localname(element: etree._Element) -> str:
    return etree.QName(element).localname


def _child(parent: etree._Element, name: str) -> Optional[etree._Element]:
    for child in _elements(parent):
        if _localname(child) == name:
            return child
    return None


def _encode(parent: etree._Element, nodes: Sequence[Node], values: Mapping[str, Any], ns: str) -> None:
    known = {node.name for node in nodes}
    unknown = set(values) - known
    if unknown:
        raise ProtocolError(f"Campos desconocidos para {_localname(parent)}: {sorted(unknown)}")

    for node in nodes:
        value = values.get(node.name)
        if isinstance(node, Repeated):
            if not value:
                continue
            container = etree.SubElement(parent, f"{{{ns}}}{node.name}")
            for item in value:
                _encode(etree.SubElement(container, f"{{{ns}}}{node.item}"), node.fields, item, ns)
        elif isinstance(node, Group):
            if value is None:
                if node.optional:
                    continue
                raise ProtocolError(f"Falta el grupo obligatorio {node.name}")
            _encode(etree.SubElement(parent, f"{{{ns}}}{node.name}"), node.fields, value, ns)
        else:
            if value is None or value == "":
                if node.optional:
                    continue
                if node.kind is not Kind.AMOUNT:
                    raise ProtocolError(f"Falta el campo obligatorio {node.name}")
            etree.SubElement(parent, f"{{{ns}}}{node.name}").text = _format_value(node, value)


def _decode(element: etree._Element, nodes: Sequence[Node]) -> dict[str, Any]:
    decoded: dict[str, Any] = {}
    for node in nodes:
        child = _child(element, node.name)
        if isinstance(node, Repeated):
            if child is None:
                decoded[node.name] = []
            else:
                decoded[node.name] = [
                    _decode(item, node.fields) for item in _elements(child) if _localname(item) == node.item
                ]
        elif isinstance(node, Group):
            decoded[node.name] = None if child is None else _decode(child, node.fields)
        else:
            decoded[node.name] = None if child is None else _parse_value(node, child.text)
    return decoded


def _parse_xml(wire: str | bytes) -> etree._Element:
    data = wire.encode("utf-8") if isinstance(wire, str) else wire
    try:
        return etree.fromstring(data, parser=etree.XMLParser(resolve_entities=False, no_network=True))
    except etree.XMLSyntaxError as exc:
        raise ProtocolError(f"La respuesta AFIP no es XML válido: {exc}") from exc


def _soap_body(root: etree._Element) -> etree._Element:
    if root.tag != f"{{{SOAP_NS}}}Envelope":
        raise ProtocolError("La respuesta AFIP no es un sobre SOAP")
    body = root.find(f"{{{SOAP_NS}}}Body")
    if body is None:
        raise ProtocolError("El sobre SOAP no contiene Body")

    fault = body.find(f"{{{SOAP_NS}}}Fault")
    if fault is not None:
        code = (fault.findtext("faultcode") or "").strip()
        message = (fault.findtext("faultstring") or "").strip()
        raise ProtocolError(f"SOAP Fault {code}: {message}".strip())
    return body


def _new_envelope(ns_prefix: str, ns: str) -> tuple[etree._Element, etree._Element]:
    envelope = etree.Element(f"{{{SOAP_NS}}}Envelope", nsmap={"soapenv": SOAP_NS, ns_prefix: ns})
    etree.SubElement(envelope, f"{{{SOAP_NS}}}Header")
    body = etree.SubElement(envelope, f"{{{SOAP_NS}}}Body")
    return envelope, body


def _serialize(envelope: etree._Element) -> str:
    return etree.tostring(envelope, xml_declaration=True, encoding="utf-8").decode("utf-8")


# WSFEv1 ---------------------------------------------------------------------------


class WSFECodec:
    """Serialize WSFEv1 requests and decode their responses."""

    def __init__(self, tax_id: int) -> None:
        self.tax_id = int(tax_id)

    @staticmethod
    def operation(name: str) -> Operation:
        try:
            return OPERATIONS[name]
        except KeyError as exc:
            raise ProtocolError(f"Operación WSFEv1 desconocida: {name}") from exc

    @staticmethod
    def soap_action(name: str) -> str:
        return f"{WSFE_NS}{name}"

    def build_envelope(self, operation_name: str, session: Any, payload: Optional[Mapping[str, Any]] = None) -> str:
        """Return the SOAP request for ``operation_name``.

        ``session`` only needs ``token`` and ``signature`` attributes; it may be
        ``None`` for operations that do not authenticate (``FEDummy``).
        """

        operation = self.operation(operation_name)
        values: dict[str, Any] = dict(payload or {})
        if operation.authenticated:
            if session is None:
                raise ProtocolError(f"{operation_name} requiere una sesión WSAA")
            values["Auth"] = {"Token": session.token, "Sign": session.signature, "Cuit": self.tax_id}

        envelope, body = _new_envelope("ar", WSFE_NS)
        request = etree.SubElement(body, f"{{{WSFE_NS}}}{operation_name}")
        _encode(request, operation.request, values, WSFE_NS)
        return _serialize(envelope)

    def parse_envelope(self, wire: str | bytes, operation_name: Optional[str] = None) -> Envelope:
        """Decode a WSFEv1 SOAP message (response, or request for inspection)."""

        body = _soap_body(_parse_xml(wire))
        payload = next(_elements(body), None)
        if payload is None:
            raise ProtocolError("El Body SOAP está vacío")

        name = _localname(payload)
        is_response = name.endswith("Response")
        op_name = name[: -len("Response")] if is_response else name
        if operation_name is not None and op_name != operation_name:
            raise ProtocolError(f"Se esperaba {operation_name}Response y se recibió {name}")
        operation = self.operation(op_name)

        if not is_response:
            return Envelope(operation=op_name, is_response=False, fields=_decode(payload, operation.request))

        result = _child(payload, f"{op_name}Result")
        if result is None:
            raise ProtocolError(f"Falta el nodo {op_name}Result en la respuesta AFIP")
        return Envelope(operation=op_name, is_response=True, fields=_decode(result, operation.result))


# WSAA -----------------------------------------------------------------------------


@dataclass(frozen=True)
class LoginTicket:
    token: str
    sign: str
    generation_time: Optional[dt.datetime]
    expiration_time: dt.datetime


def encode_login_ticket_request(
    unique_id: int,
    generation_time: dt.datetime,
    expiration_time: dt.datetime,
    service: str,
) -> str:
    root = etree.Element("loginTicketRequest", version="1.0")
    header = etree.SubElement(root, "header")
    etree.SubElement(header, "uniqueId").text = str(int(unique_id))
    etree.SubElement(header, "generationTime").text = generation_time.isoformat(timespec="seconds")
    etree.SubElement(header, "expirationTime").text = expiration_time.isoformat(timespec="seconds")
    etree.SubElement(root, "service").text = service
    return etree.tostring(root, xml_declaration=True, encoding="utf-8").decode("utf-8")


def build_login_envelope(signed_cms: str) -> str:
    envelope, body = _new_envelope("wsaa", WSAA_NS)
    login = etree.SubElement(body, f"{{{WSAA_NS}}}loginCms")
    etree.SubElement(login, f"{{{WSAA_NS}}}in0").text = signed_cms
    return _serialize(envelope)


def _parse_timestamp(text: str) -> Optional[dt.datetime]:
    try:
        return parse_datetime(text)
    except ValueError:
        return None


def parse_login_envelope(wire: str | bytes) -> LoginTicket:
    """Extract token, sign and expiration from a ``loginCms`` response."""

    body = _soap_body(_parse_xml(wire))
    returned = body.xpath(".//*[local-name()='loginCmsReturn']")
    if not returned or not (returned[0].text or "").strip():
        raise ProtocolError("Falta loginCmsReturn en la respuesta WSAA")

    ticket = _parse_xml(returned[0].text.strip())
    token = (ticket.findtext("credentials/token") or "").strip()
    sign = (ticket.findtext("credentials/sign") or "").strip()
    expiration_text = (ticket.findtext("header/expirationTime") or "").strip()
    if not token or not sign or not expiration_text:
        raise ProtocolError("El ticket de acceso WSAA está incompleto")

    expiration_time = _parse_timestamp(expiration_text)
    if expiration_time is None or expiration_time.tzinfo is None:
        raise ProtocolError(f"expirationTime inválido en el ticket WSAA: {expiration_text!r}")

    generation_text = (ticket.findtext("header/generationTime") or "").strip()
    return LoginTicket(
        token=token,
        sign=sign,
        generation_time=_parse_timestamp(generation_text) if generation_text else None,
        expiration_time=expiration_time,
    )


__all__ = [
    "Envelope",
    "LoginTicket",
    "ProtocolError",
    "SOAP_NS",
    "WSAA_NS",
    "WSFECodec",
    "WSFE_NS",
    "build_login_envelope",
    "encode_login_ticket_request",
    "format_amount",
    "format_date",
    "parse_login_envelope",
]
