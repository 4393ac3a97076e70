"""WSAA authentication: login ticket requests and the cached session."""

from __future__ import annotations

import datetime as dt
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from django.utils import timezone

from .codec import (
    ProtocolError,
    build_login_envelope,
    encode_login_ticket_request,
    parse_login_envelope,
)
from .config import AFIPConfig
from .errors import AFIPError
from .http import SoapPost, TransportError
from .signer import TicketSigner

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]

GENERATION_SKEW = dt.timedelta(minutes=10)


class AuthenticationError(AFIPError):
    """Raised when a WSAA session cannot be obtained, refreshed or is refused by WSFEv1."""

    def __init__(self, message: str, errors: Iterable[Mapping[str, Any]] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


@dataclass(frozen=True)
class TicketRequest:
    """Time-boxed login request for one WSAA service."""

    unique_id: int
    generation_time: dt.datetime
    expiration_time: dt.datetime
    service: str

    def to_xml(self) -> str:
        return encode_login_ticket_request(
            self.unique_id,
            self.generation_time,
            self.expiration_time,
            self.service,
        )


def build_ticket_request(service: str, now: dt.datetime, ttl: dt.timedelta = dt.timedelta(hours=12)) -> TicketRequest:
    # Backdated so small clock differences with WSAA do not reject the ticket.
    generation = now - GENERATION_SKEW
    return TicketRequest(
        unique_id=int(now.timestamp()),
        generation_time=generation,
        expiration_time=generation + ttl,
        service=service,
    )


@dataclass(frozen=True)
class Session:
    """Token and sign returned by WSAA; replaced as a whole on refresh."""

    token: str
    signature: str
    expires_at: dt.datetime

    def is_valid(self, now: dt.datetime, margin: dt.timedelta = dt.timedelta(0)) -> bool:
        return now + margin < self.expires_at


class SessionManager:
    """Obtain and cache the WSAA session, refreshing it at most once at a time."""

    def __init__(
        self,
        config: AFIPConfig,
        *,
        soap_post: SoapPost,
        signer: Optional[TicketSigner] = None,
        clock: Clock = timezone.now,
    ) -> None:
        self._config = config
        self._soap_post = soap_post
        self._signer = signer or TicketSigner(config)
        self._clock = clock
        self._margin = dt.timedelta(seconds=config.clock_skew_margin)
        self._lock = threading.Lock()
        self._session: Optional[Session] = None
        self._refresh: Optional[Future] = None

    @property
    def cached(self) -> Optional[Session]:
        return self._session

    def _valid(self, session: Optional[Session]) -> bool:
        return session is not None and session.is_valid(self._clock(), self._margin)

    def invalidate(self) -> None:
        with self._lock:
            self._session = None

    def get_session(self) -> Session:
        session = self._session
        if self._valid(session):
            return session

        with self._lock:
            session = self._session
            if self._valid(session):
                return session
            refresh = self._refresh
            leader = refresh is None
            if leader:
                refresh = self._refresh = Future()

        if not leader:
            # Another thread is already talking to WSAA; share its outcome.
            return refresh.result()

        try:
            session = self._authenticate()
        except BaseException as exc:
            with self._lock:
                self._refresh = None
            refresh.set_exception(exc)
            raise

        with self._lock:
            self._session = session
            self._refresh = None
        refresh.set_result(session)
        return session

    def _authenticate(self) -> Session:
        config = self._config
        ticket = build_ticket_request(config.service, self._clock(), config.ticket_ttl)
        signed_cms = self._signer.sign(ticket.to_xml())

        logger.info("AFIP: solicitando ticket WSAA para %s (%s)", config.service, config.environment.value)
        try:
            response = self._soap_post(config.endpoints.wsaa, build_login_envelope(signed_cms), "")
        except TransportError as exc:
            logger.error("AFIP: fallo de red contra WSAA: %s", exc)
            raise AuthenticationError(f"No se pudo contactar WSAA: {exc}") from exc

        try:
            ticket_response = parse_login_envelope(response)
        except ProtocolError as exc:
            logger.error("AFIP: respuesta WSAA inválida: %s", exc)
            raise AuthenticationError(f"Respuesta WSAA inválida: {exc}") from exc

        logger.info("AFIP: ticket WSAA vigente hasta %s", ticket_response.expiration_time.isoformat())
        return Session(
            token=ticket_response.token,
            signature=ticket_response.sign,
            expires_at=ticket_response.expiration_time,
        )


__all__ = [
    "AuthenticationError",
    "Session",
    "SessionManager",
    "TicketRequest",
    "build_ticket_request",
]
