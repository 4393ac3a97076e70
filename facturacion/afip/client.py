"""WSFEv1 authorization client (CAE requests)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from . import builder
from .auth import AuthenticationError, SessionManager
from .codec import Envelope, ProtocolError, WSFECodec
from .config import AFIPConfig
from .documents import AuthorizationResult, FiscalDocument, Outcome, messages
from .errors import AFIPError
from .http import SoapPost, TransportError, build_requests_soap_post

logger = logging.getLogger(__name__)

# Token or sign refused, or the represented CUIT is missing from the ticket.
SESSION_ERROR_CODES = frozenset({600, 601})
# Internal application or database failures on the AFIP side.
SERVER_ERROR_CODES = frozenset({500, 501, 502})
# FECompConsultar: no record for the requested number.
NOT_FOUND_CODE = 602


class SubmissionUncertainError(AFIPError):
    """FECAESolicitar was sent but its answer was lost or unreadable.

    AFIP may have authorized ``number`` anyway, so the document must be
    looked up with ``query_document`` before it is submitted again.
    """

    def __init__(
        self,
        message: str,
        *,
        point_of_sale: int,
        document_type: int,
        number: int,
        errors: Iterable[Mapping[str, Any]] = (),
    ) -> None:
        super().__init__(message)
        self.point_of_sale = point_of_sale
        self.document_type = document_type
        self.number = number
        self.errors = list(errors)


@dataclass(frozen=True)
class ServerStatus:
    app_server: str
    db_server: str
    auth_server: str

    @property
    def ok(self) -> bool:
        return all(value == "OK" for value in (self.app_server, self.db_server, self.auth_server))


def _describe(errors: Iterable[Mapping[str, Any]]) -> str:
    return "; ".join(f"{item.get('Code')}: {item.get('Msg')}" for item in errors)


def _error_codes(errors: Iterable[Mapping[str, Any]]) -> set[int]:
    return {int(item.get("Code") or 0) for item in errors}


def _raise_for_errors(envelope: Envelope, context: str) -> None:
    errors = envelope.fields.get("Errors") or []
    if errors:
        raise ProtocolError(f"{context}: {_describe(errors)}", errors=errors)


def _matches(document: FiscalDocument, record: Mapping[str, Any], number: int) -> bool:
    expected = builder.build(document, number)["FeDetReq"][0]
    return all(record.get(name) == expected[name] for name in ("DocTipo", "DocNro", "CbteFch", "ImpTotal"))


class AuthorizationClient:
    """Combine session, request builder and codec for WSFEv1 calls.

    No retries happen here: a rejection is returned as a value and every
    other failure propagates to the caller.
    """

    def __init__(
        self,
        config: AFIPConfig,
        *,
        soap_post: Optional[SoapPost] = None,
        session_manager: Optional[SessionManager] = None,
        codec: Optional[WSFECodec] = None,
    ) -> None:
        self._config = config.validate()
        self._soap_post = soap_post or build_requests_soap_post(timeout=config.timeout)
        self._sessions = session_manager or SessionManager(config, soap_post=self._soap_post)
        self._codec = codec or WSFECodec(config.cuit)

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def _call(self, operation: str, payload: Optional[Mapping[str, Any]] = None, *, authenticated: bool = True) -> Envelope:
        session = self._sessions.get_session() if authenticated else None
        request = self._codec.build_envelope(operation, session, payload)
        response = self._soap_post(self._config.endpoints.wsfe, request, self._codec.soap_action(operation))
        envelope = self._codec.parse_envelope(response, operation)
        if authenticated:
            self._raise_for_faults(envelope, operation)
        return envelope

    def _raise_for_faults(self, envelope: Envelope, operation: str) -> None:
        """Raise for errors about the session or AFIP itself, never about the document."""

        errors = envelope.fields.get("Errors") or []
        codes = _error_codes(errors)
        if codes & SESSION_ERROR_CODES:
            logger.warning("AFIP: %s rechazó el ticket WSAA, se descarta la sesión: %s", operation, _describe(errors))
            self._sessions.invalidate()
            raise AuthenticationError(f"{operation}: {_describe(errors)}", errors=errors)
        if codes & SERVER_ERROR_CODES:
            raise ProtocolError(f"{operation}: {_describe(errors)}", errors=errors)

    # Public API --------------------------------------------------------------------

    def server_status(self) -> ServerStatus:
        envelope = self._call("FEDummy", authenticated=False)
        fields = envelope.fields
        return ServerStatus(
            app_server=fields.get("AppServer") or "",
            db_server=fields.get("DbServer") or "",
            auth_server=fields.get("AuthServer") or "",
        )

    def query_last_authorized_number(self, point_of_sale: int, document_type: int) -> int:
        envelope = self._call("FECompUltimoAutorizado", {"PtoVta": int(point_of_sale), "CbteTipo": int(document_type)})
        _raise_for_errors(envelope, "FECompUltimoAutorizado")
        number = envelope.fields.get("CbteNro")
        return int(number or 0)

    def query_document(self, point_of_sale: int, document_type: int, number: int) -> dict[str, Any]:
        """Return AFIP's record of an authorized document (``ResultGet`` fields)."""

        envelope = self._call(
            "FECompConsultar",
            {"FeCompConsReq": {"CbteTipo": int(document_type), "CbteNro": int(number), "PtoVta": int(point_of_sale)}},
        )
        result = envelope.fields.get("ResultGet")
        if result is None:
            _raise_for_errors(envelope, "FECompConsultar")
            raise ProtocolError("FECompConsultar no devolvió ResultGet")
        return result

    def authorize(self, document: FiscalDocument) -> AuthorizationResult:
        # Mapping problems surface before any network traffic.
        builder.validate_document(document)

        point_of_sale = int(document.point_of_sale)
        document_type = int(document.document_type)
        next_number = self.query_last_authorized_number(point_of_sale, document_type) + 1
        fields = builder.build(document, next_number)

        logger.info("AFIP: solicitando CAE tipo %s PV %s número %s", document_type, point_of_sale, next_number)
        try:
            envelope = self._call("FECAESolicitar", {"FeCAEReq": fields})
            result = classify(envelope, point_of_sale=point_of_sale, document_type=document_type, number=next_number)
        except (TransportError, ProtocolError) as exc:
            logger.warning(
                "AFIP: sin respuesta confirmada para %s-%s-%s: %s", document_type, point_of_sale, next_number, exc
            )
            raise SubmissionUncertainError(
                f"FECAESolicitar número {next_number} sin respuesta confirmada: {exc}",
                point_of_sale=point_of_sale,
                document_type=document_type,
                number=next_number,
                errors=getattr(exc, "errors", ()),
            ) from exc
        logger.info("AFIP: comprobante %s-%s-%s resultado %s", document_type, point_of_sale, next_number, result.outcome.name)
        return result

    def reconcile(self, document: FiscalDocument, error: SubmissionUncertainError) -> Optional[AuthorizationResult]:
        """Recover the result of an unconfirmed submission from AFIP's records.

        Returns ``None`` when AFIP holds no authorization for ``document``
        under ``error.number``, meaning it is safe to submit it again.
        """

        try:
            record = self.query_document(error.point_of_sale, error.document_type, error.number)
        except ProtocolError as exc:
            if NOT_FOUND_CODE in _error_codes(exc.errors):
                logger.info("AFIP: número %s no registrado, se puede reenviar", error.number)
                return None
            raise

        if record.get("Resultado") not in (Outcome.APPROVED.value, Outcome.PARTIAL.value) or not record.get("CodAutorizacion"):
            return None
        if not _matches(document, record, error.number):
            logger.warning("AFIP: el número %s corresponde a otro comprobante", error.number)
            return None

        logger.info("AFIP: número %s ya autorizado con CAE %s", error.number, record["CodAutorizacion"])
        return AuthorizationResult(
            outcome=Outcome(record["Resultado"]),
            document_type=error.document_type,
            point_of_sale=error.point_of_sale,
            number=error.number,
            authorization_code=record["CodAutorizacion"],
            authorization_expiry=record.get("FchVto"),
            document_date=record.get("CbteFch"),
            observations=messages(record.get("Observaciones") or []),
        )


def classify(envelope: Envelope, *, point_of_sale: int, document_type: int, number: int) -> AuthorizationResult:
    """Turn a FECAESolicitar response into an AuthorizationResult."""

    fields = envelope.fields
    header = fields.get("FeCabResp")
    details = fields.get("FeDetResp") or []
    errors = messages(fields.get("Errors") or [])
    events = messages(fields.get("Events") or [])

    if header is None and not details:
        if errors:
            # AFIP answers request-level validation failures with Errors only.
            return AuthorizationResult(
                outcome=Outcome.REJECTED,
                document_type=document_type,
                point_of_sale=point_of_sale,
                number=number,
                errors=errors,
                events=events,
            )
        raise ProtocolError("La respuesta FECAESolicitar no contiene cabecera ni detalle")

    detail = details[0] if details else {}
    flag = detail.get("Resultado") or (header or {}).get("Resultado")
    try:
        outcome = Outcome(flag)
    except ValueError as exc:
        raise ProtocolError(f"Resultado desconocido en FECAESolicitar: {flag!r}") from exc

    observations = messages(detail.get("Observaciones") or [])
    if outcome is Outcome.REJECTED:
        return AuthorizationResult(
            outcome=outcome,
            document_type=document_type,
            point_of_sale=point_of_sale,
            number=number,
            document_date=detail.get("CbteFch"),
            observations=observations,
            errors=errors,
            events=events,
        )

    return AuthorizationResult(
        outcome=outcome,
        document_type=document_type,
        point_of_sale=point_of_sale,
        number=int(detail.get("CbteDesde") or number),
        authorization_code=detail.get("CAE"),
        authorization_expiry=detail.get("CAEFchVto"),
        document_date=detail.get("CbteFch"),
        observations=observations,
        errors=errors,
        events=events,
    )


__all__ = ["AuthorizationClient", "ServerStatus", "SubmissionUncertainError", "classify"]
