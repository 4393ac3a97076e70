"""HTTP adapters for the AFIP SOAP endpoints."""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

import requests

from .errors import AFIPError

logger = logging.getLogger(__name__)

SoapPost = Callable[[str, str, str], str]

_SECRET_PATTERNS = (
    re.compile(r"(<(?:\w+:)?Token>)[^<]*(</(?:\w+:)?Token>)"),
    re.compile(r"(<(?:\w+:)?Sign>)[^<]*(</(?:\w+:)?Sign>)"),
    re.compile(r"(<(?:\w+:)?in0>)[^<]*(</(?:\w+:)?in0>)"),
    re.compile(r"(&lt;token&gt;).*?(&lt;/token&gt;)", re.S),
    re.compile(r"(&lt;sign&gt;).*?(&lt;/sign&gt;)", re.S),
)


class TransportError(AFIPError):
    """Network-level failure talking to an AFIP endpoint."""


class TransportTimeout(TransportError):
    """The endpoint did not answer within the configured timeout."""


def redact_envelope(message: str) -> str:
    """Hide credentials (token, sign, signed CMS) before logging a SOAP message."""

    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(r"\1[REDACTED]\2", message)
    return message


def _looks_like_soap(body: str) -> bool:
    return "Envelope" in body[:512]


def build_requests_soap_post(session: Optional[requests.Session] = None, timeout: float = 30.0) -> SoapPost:
    """Return a SoapPost callable backed by requests."""

    sess = session or requests.Session()
    default_timeout = timeout

    def soap_post(url: str, body: str, soap_action: str) -> str:
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": f'"{soap_action}"',
        }
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("AFIP: POST %s (%s)\n%s", url, soap_action, redact_envelope(body))

        try:
            response = sess.post(
                url,
                data=body.encode("utf-8"),
                headers=headers,
                timeout=default_timeout,
            )
        except requests.Timeout as exc:
            raise TransportTimeout(f"Tiempo de espera agotado llamando a {url}") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Error de red llamando a {url}: {exc}") from exc

        text = response.text
        # SOAP faults travel with HTTP 500; let the codec report them.
        if response.status_code >= 400 and not _looks_like_soap(text):
            raise TransportError(f"HTTP {response.status_code} desde {url}")

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("AFIP: respuesta %s\n%s", response.status_code, redact_envelope(text))
        return text

    return soap_post


__all__ = [
    "SoapPost",
    "TransportError",
    "TransportTimeout",
    "build_requests_soap_post",
    "redact_envelope",
]
