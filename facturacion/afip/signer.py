"""Load the AFIP certificate and sign WSAA login ticket requests (CMS)."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs7, pkcs12
from lxml import etree

from .config import AFIPConfig
from .errors import AFIPError
from .secrets import CredentialFiles, SecretsError, load_credential_files

logger = logging.getLogger(__name__)

SigningKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]

PKCS12_SUFFIXES = (".p12", ".pfx")


class SigningError(AFIPError):
    """Raised when the key material cannot be loaded or the signature fails."""


@dataclass(frozen=True)
class CertificateBundle:
    """Private key and X.509 certificate ready for signing."""

    private_key: SigningKey
    certificate: x509.Certificate

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()


def _load_certificate(data: bytes) -> x509.Certificate:
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise SigningError("El certificado X.509 es inválido") from exc


def _load_private_key(data: bytes, password: Optional[str]) -> SigningKey:
    secret = password.encode("utf-8") if password else None
    try:
        if b"-----BEGIN" in data:
            key = serialization.load_pem_private_key(data, password=secret)
        else:
            key = serialization.load_der_private_key(data, password=secret)
    except (ValueError, TypeError) as exc:
        raise SigningError("No se pudo cargar la clave privada") from exc

    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise SigningError("Tipo de clave privada no soportado para firmar CMS")
    return key


def _load_pkcs12(data: bytes, password: Optional[str]) -> CertificateBundle:
    try:
        private_key, cert, _additional = pkcs12.load_key_and_certificates(
            data,
            password.encode("utf-8") if password else None,
        )
    except (ValueError, TypeError) as exc:
        raise SigningError("No se pudo cargar el certificado PKCS#12") from exc

    if cert is None or private_key is None:
        raise SigningError("El certificado PKCS#12 no contiene llave privada o certificado")
    return CertificateBundle(private_key=private_key, certificate=cert)


def bundle_from_files(files: CredentialFiles, *, pkcs12_container: bool = False) -> CertificateBundle:
    if pkcs12_container:
        return _load_pkcs12(files.certificate_bytes, files.password)
    return CertificateBundle(
        private_key=_load_private_key(files.private_key_bytes, files.password),
        certificate=_load_certificate(files.certificate_bytes),
    )


def load_certificate_bundle(config: AFIPConfig) -> CertificateBundle:
    """Read and parse the configured certificate and private key."""

    try:
        files = load_credential_files(
            config.certificate_path,
            config.private_key_path,
            password=config.private_key_password,
            encryption_key=config.encryption_key,
        )
    except SecretsError as exc:
        raise SigningError(str(exc)) from exc

    pkcs12_container = config.certificate_path.lower().endswith(PKCS12_SUFFIXES)
    return bundle_from_files(files, pkcs12_container=pkcs12_container)


def canonicalize(xml_payload: str) -> bytes:
    try:
        tree = etree.fromstring(xml_payload.encode("utf-8"))
    except etree.XMLSyntaxError as exc:
        raise SigningError("XML inválido para la firma del ticket") from exc
    return etree.tostring(tree, method="c14n", exclusive=False, with_comments=False)


def sign_ticket_request(
    ticket_xml: str,
    private_key: SigningKey,
    certificate: x509.Certificate,
    *,
    detached: bool = False,
) -> str:
    """Return the base64 CMS SignedData over the canonical ticket request.

    WSAA only accepts the signed data with the content embedded, so
    ``detached`` is meant for verification tooling.
    """

    content = canonicalize(ticket_xml)
    options = [pkcs7.PKCS7Options.Binary]
    if detached:
        options.append(pkcs7.PKCS7Options.DetachedSignature)

    try:
        signed = (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(content)
            .add_signer(certificate, private_key, hashes.SHA256())
            .sign(serialization.Encoding.DER, options)
        )
    except (ValueError, TypeError) as exc:
        raise SigningError("Error al firmar el ticket de acceso con el certificado") from exc

    return base64.b64encode(signed).decode("ascii")


class TicketSigner:
    """Sign login ticket requests with the configured certificate."""

    def __init__(self, config: Optional[AFIPConfig] = None, *, bundle: Optional[CertificateBundle] = None) -> None:
        if config is None and bundle is None:
            raise SigningError("Se requiere configuración o un certificado cargado para firmar")
        self._config = config
        self._bundle = bundle

    def ensure_bundle(self) -> CertificateBundle:
        if self._bundle is None:
            self._bundle = load_certificate_bundle(self._config)
            logger.info("AFIP: certificado cargado (%s)", self._bundle.subject)
        return self._bundle

    def sign(self, ticket_xml: str) -> str:
        bundle = self.ensure_bundle()
        return sign_ticket_request(ticket_xml, bundle.private_key, bundle.certificate)


__all__ = [
    "CertificateBundle",
    "SigningError",
    "TicketSigner",
    "bundle_from_files",
    "canonicalize",
    "load_certificate_bundle",
    "sign_ticket_request",
]
