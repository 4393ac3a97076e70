"""AFIP electronic invoicing helpers (WSAA tickets and WSFEv1 CAE requests).

The ORM-backed pieces live in :mod:`facturacion.afip.service` and are not
re-exported here so that ``facturacion.models`` can import this package.
"""

from .auth import AuthenticationError, Session, SessionManager, TicketRequest, build_ticket_request
from .batch import BatchAuthorizer, BatchFailure, BatchResult, FixedIntervalPacer, RetryPolicy
from .builder import (
    DocumentTotalsError,
    MappingError,
    UnsupportedDocumentTypeError,
    UnsupportedTaxRateError,
    build,
    validate_document,
    vat_code,
)
from .client import AuthorizationClient, ServerStatus, SubmissionUncertainError
from .codec import Envelope, LoginTicket, ProtocolError, WSFECodec
from .config import AFIPConfig, ConfigurationError, Environment
from .cuit import CUITValidation, format_cuit, validate_cuit
from .documents import (
    AssociatedDocument,
    AuthorizationResult,
    FiscalDocument,
    Message,
    OtherTributeItem,
    Outcome,
    VatItem,
)
from .errors import AFIPError
from .http import TransportError, TransportTimeout, build_requests_soap_post
from .secrets import SecretsError, load_credential_files, refresh_cached_secrets
from .signer import CertificateBundle, SigningError, TicketSigner, load_certificate_bundle
from .tables import Concept, DocumentType, IdentificationType

__all__ = [
    "AFIPError",
    "AFIPConfig",
    "ConfigurationError",
    "Environment",
    "AuthenticationError",
    "Session",
    "SessionManager",
    "TicketRequest",
    "build_ticket_request",
    "BatchAuthorizer",
    "BatchFailure",
    "BatchResult",
    "FixedIntervalPacer",
    "RetryPolicy",
    "DocumentTotalsError",
    "MappingError",
    "UnsupportedDocumentTypeError",
    "UnsupportedTaxRateError",
    "build",
    "validate_document",
    "vat_code",
    "AuthorizationClient",
    "ServerStatus",
    "SubmissionUncertainError",
    "Envelope",
    "LoginTicket",
    "ProtocolError",
    "WSFECodec",
    "CUITValidation",
    "format_cuit",
    "validate_cuit",
    "AssociatedDocument",
    "AuthorizationResult",
    "FiscalDocument",
    "Message",
    "OtherTributeItem",
    "Outcome",
    "VatItem",
    "TransportError",
    "TransportTimeout",
    "build_requests_soap_post",
    "SecretsError",
    "load_credential_files",
    "refresh_cached_secrets",
    "CertificateBundle",
    "SigningError",
    "TicketSigner",
    "load_certificate_bundle",
    "Concept",
    "DocumentType",
    "IdentificationType",
]
