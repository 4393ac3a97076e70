"""Shared fixtures for the AFIP tests: configs, throwaway certificates and canned SOAP replies."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from lxml import etree

from facturacion.afip.codec import SOAP_NS, WSAA_NS, WSFE_NS
from facturacion.afip.config import AFIPConfig
from facturacion.afip.documents import FiscalDocument
from facturacion.afip.tables import DocumentType, IdentificationType

EMITTER_CUIT = "20123456786"
RECEIVER_CUIT = "30712345689"


def make_config(**overrides) -> AFIPConfig:
    defaults = {
        "tax_id": EMITTER_CUIT,
        "certificate_path": "/tmp/afip-test.crt",
        "private_key_path": "/tmp/afip-test.key",
        "point_of_sale": 1,
    }
    defaults.update(overrides)
    return AFIPConfig(**defaults)


def make_certificate(common_name: str = "facturacion-test"):
    """Return a fresh RSA key and a self-signed certificate for it."""

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "AR"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        x509.NameAttribute(NameOID.SERIAL_NUMBER, f"CUIT {EMITTER_CUIT}"),
    ])
    now = dt.datetime.now(dt.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - dt.timedelta(days=1))
        .not_valid_after(now + dt.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return key, certificate


def pem_bytes(key, certificate, password: bytes | None = None) -> tuple[bytes, bytes]:
    encryption = (
        serialization.BestAvailableEncryption(password) if password else serialization.NoEncryption()
    )
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        encryption,
    )
    return certificate.public_bytes(serialization.Encoding.PEM), key_pem


def invoice_b(**overrides) -> FiscalDocument:
    """Factura B to a final consumer: 1000.00 net at 21%."""

    defaults = {
        "document_type": DocumentType.FACTURA_B,
        "point_of_sale": 1,
        "issue_date": dt.date(2026, 10, 18),
        "counterparty_id_type": IdentificationType.CONSUMIDOR_FINAL,
        "counterparty_id_number": "0",
        "total": Decimal("1210.00"),
        "net_taxed": Decimal("1000.00"),
        "vat_amount": Decimal("210.00"),
        "vat_rate": Decimal("21"),
    }
    defaults.update(overrides)
    return FiscalDocument(**defaults)


def soap_response(operation: str, result_xml: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<soap:Envelope xmlns:soap="{SOAP_NS}"><soap:Body>'
        f'<{operation}Response xmlns="{WSFE_NS}">'
        f"<{operation}Result>{result_xml}</{operation}Result>"
        f"</{operation}Response>"
        "</soap:Body></soap:Envelope>"
    )


def soap_fault(code: str = "soap:Server", message: str = "Server was unable to process request.") -> str:
    return (
        f'<soap:Envelope xmlns:soap="{SOAP_NS}"><soap:Body><soap:Fault>'
        f"<faultcode>{code}</faultcode><faultstring>{message}</faultstring>"
        "</soap:Fault></soap:Body></soap:Envelope>"
    )


def last_authorized_response(number: int, point_of_sale: int = 1, document_type: int = 6) -> str:
    return soap_response(
        "FECompUltimoAutorizado",
        f"<PtoVta>{point_of_sale}</PtoVta><CbteTipo>{document_type}</CbteTipo><CbteNro>{number}</CbteNro>",
    )


def approved_response(number: int, cae: str = "76123456789012", expiry: str = "20261028") -> str:
    return soap_response(
        "FECAESolicitar",
        "<FeCabResp><Cuit>20123456786</Cuit><PtoVta>1</PtoVta><CbteTipo>6</CbteTipo>"
        "<FchProceso>20261018103000</FchProceso><CantReg>1</CantReg><Resultado>A</Resultado>"
        "<Reproceso>N</Reproceso></FeCabResp>"
        "<FeDetResp><FECAEDetResponse>"
        "<Concepto>1</Concepto><DocTipo>99</DocTipo><DocNro>0</DocNro>"
        f"<CbteDesde>{number}</CbteDesde><CbteHasta>{number}</CbteHasta><CbteFch>20261018</CbteFch>"
        f"<Resultado>A</Resultado><CAE>{cae}</CAE><CAEFchVto>{expiry}</CAEFchVto>"
        "</FECAEDetResponse></FeDetResp>",
    )


def rejected_response(number: int) -> str:
    return soap_response(
        "FECAESolicitar",
        "<FeCabResp><Cuit>20123456786</Cuit><PtoVta>1</PtoVta><CbteTipo>6</CbteTipo>"
        "<FchProceso>20261018103000</FchProceso><CantReg>1</CantReg><Resultado>R</Resultado>"
        "<Reproceso>N</Reproceso></FeCabResp>"
        "<FeDetResp><FECAEDetResponse>"
        "<Concepto>1</Concepto><DocTipo>99</DocTipo><DocNro>0</DocNro>"
        f"<CbteDesde>{number}</CbteDesde><CbteHasta>{number}</CbteHasta><CbteFch>20261018</CbteFch>"
        "<Resultado>R</Resultado>"
        "<Observaciones><Obs><Code>10016</Code>"
        "<Msg>El numero o fecha del comprobante no se corresponde con el proximo a autorizar.</Msg>"
        "</Obs></Observaciones>"
        "<CAE></CAE><CAEFchVto></CAEFchVto>"
        "</FECAEDetResponse></FeDetResp>",
    )


def login_response(
    token: str = "PD94bWwgdG9rZW4=",
    sign: str = "c2lnbmF0dXJl",
    expiration: str = "2026-10-18T22:00:00.000-03:00",
    generation: str = "2026-10-18T09:50:00.000-03:00",
) -> str:
    ticket = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<loginTicketResponse version="1.0"><header>'
        "<source>CN=wsaahomo, O=AFIP, C=AR, SERIALNUMBER=CUIT 33693450239</source>"
        f"<destination>SERIALNUMBER=CUIT {EMITTER_CUIT}, CN=facturacion-test</destination>"
        "<uniqueId>4129478261</uniqueId>"
        f"<generationTime>{generation}</generationTime>"
        f"<expirationTime>{expiration}</expirationTime>"
        "</header><credentials>"
        f"<token>{token}</token><sign>{sign}</sign>"
        "</credentials></loginTicketResponse>"
    )
    envelope = etree.Element(f"{{{SOAP_NS}}}Envelope", nsmap={"soapenv": SOAP_NS})
    body = etree.SubElement(envelope, f"{{{SOAP_NS}}}Body")
    response = etree.SubElement(body, f"{{{WSAA_NS}}}loginCmsResponse", nsmap={None: WSAA_NS})
    etree.SubElement(response, f"{{{WSAA_NS}}}loginCmsReturn").text = ticket
    return etree.tostring(envelope, encoding="unicode")


def errors_response(operation: str, code: int, message: str) -> str:
    return soap_response(operation, f"<Errors><Err><Code>{code}</Code><Msg>{message}</Msg></Err></Errors>")


def consulted_response(number: int, cae: str = "76123456789012", total: str = "1210.00", doc_nro: int = 0) -> str:
    """FECompConsultar record for a Factura B authorized on 2026-10-18."""

    return soap_response(
        "FECompConsultar",
        f"<ResultGet><Concepto>1</Concepto><DocTipo>99</DocTipo><DocNro>{doc_nro}</DocNro>"
        f"<CbteDesde>{number}</CbteDesde><CbteHasta>{number}</CbteHasta><CbteFch>20261018</CbteFch>"
        f"<ImpTotal>{total}</ImpTotal><ImpTotConc>0</ImpTotConc><ImpNeto>1000</ImpNeto>"
        "<ImpOpEx>0</ImpOpEx><ImpTrib>0</ImpTrib><ImpIVA>210</ImpIVA>"
        "<MonId>PES</MonId><MonCotiz>1</MonCotiz>"
        "<Iva><AlicIva><Id>5</Id><BaseImp>1000</BaseImp><Importe>210</Importe></AlicIva></Iva>"
        f"<Resultado>A</Resultado><CodAutorizacion>{cae}</CodAutorizacion>"
        "<EmisionTipo>CAE</EmisionTipo><FchVto>20261028</FchVto><FchProceso>20261018103000</FchProceso>"
        f"<PtoVta>1</PtoVta><CbteTipo>6</CbteTipo></ResultGet>",
    )


NOT_FOUND_MESSAGE = "No existen datos en nuestros registros para los parametros ingresados."
