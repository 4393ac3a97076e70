"""Configuration and endpoints for the AFIP web services."""

from __future__ import annotations

import datetime as dt
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from django.conf import settings

from .cuit import validate_cuit
from .errors import AFIPError


class ConfigurationError(AFIPError):
    """Raised when the AFIP configuration is incomplete or invalid."""


class Environment(str, Enum):
    PRODUCTION = "production"
    SANDBOX = "sandbox"


@dataclass(frozen=True)
class Endpoints:
    wsaa: str
    wsfe: str


ENDPOINTS: Mapping[Environment, Endpoints] = {
    Environment.PRODUCTION: Endpoints(
        wsaa="https://wsaa.afip.gov.ar/ws/services/LoginCms",
        wsfe="https://servicios1.afip.gov.ar/wsfev1/service.asmx",
    ),
    Environment.SANDBOX: Endpoints(
        wsaa="https://wsaahomo.afip.gov.ar/ws/services/LoginCms",
        wsfe="https://wswhomo.afip.gov.ar/wsfev1/service.asmx",
    ),
}

MAX_POINT_OF_SALE = 99998


@dataclass(frozen=True)
class AFIPConfig:
    """Immutable settings for one taxpayer / point of sale."""

    tax_id: str
    certificate_path: str
    private_key_path: str
    environment: Environment = Environment.SANDBOX
    point_of_sale: int = 1
    private_key_password: Optional[str] = None
    encryption_key: Optional[str] = None
    service: str = "wsfe"
    timeout: float = 30.0
    ticket_ttl: dt.timedelta = dt.timedelta(hours=12)
    clock_skew_margin: int = 60
    pacing_interval: float = 1.0
    max_attempts: int = 1

    @property
    def endpoints(self) -> Endpoints:
        return ENDPOINTS[self.environment]

    @property
    def cuit(self) -> int:
        return int("".join(ch for ch in self.tax_id if ch.isdigit()))

    def validate(self) -> "AFIPConfig":
        """Check the configuration once; returns ``self`` so it can be chained."""

        result = validate_cuit(self.tax_id)
        if not result.valid:
            raise ConfigurationError(f"CUIT del emisor inválido: {result.error}")

        if not isinstance(self.environment, Environment):
            raise ConfigurationError(f"Entorno AFIP desconocido: {self.environment!r}")

        if not 1 <= int(self.point_of_sale) <= MAX_POINT_OF_SALE:
            raise ConfigurationError(
                f"Punto de venta fuera de rango (1..{MAX_POINT_OF_SALE}): {self.point_of_sale}"
            )

        if not self.certificate_path or not self.private_key_path:
            raise ConfigurationError("Config AFIP incompleta: requiere certificado y clave privada")

        if self.timeout <= 0:
            raise ConfigurationError("El timeout debe ser mayor a cero")

        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts debe ser al menos 1")

        if self.ticket_ttl <= dt.timedelta(0) or self.ticket_ttl > dt.timedelta(hours=24):
            raise ConfigurationError("La vigencia del ticket debe estar entre 0 y 24 horas")

        return self

    @classmethod
    def from_settings(cls, overrides: Optional[Mapping[str, Any]] = None) -> "AFIPConfig":
        """Build the configuration from ``settings.AFIP`` and ``AFIP_*`` variables."""

        values: dict[str, Any] = dict(getattr(settings, "AFIP", None) or {})
        for env_name, key in _ENV_OVERRIDES.items():
            env_value = os.environ.get(env_name)
            if env_value:
                values[key] = env_value
        if overrides:
            values.update(overrides)

        if not values.get("tax_id"):
            raise ConfigurationError("Config AFIP incompleta: falta el CUIT del emisor")

        try:
            environment = Environment(values.get("environment", Environment.SANDBOX))
        except ValueError as exc:
            raise ConfigurationError(f"Entorno AFIP desconocido: {values.get('environment')!r}") from exc

        try:
            config = cls(
                tax_id=str(values["tax_id"]),
                certificate_path=str(values.get("certificate_path") or ""),
                private_key_path=str(values.get("private_key_path") or ""),
                environment=environment,
                point_of_sale=int(values.get("point_of_sale", 1)),
                private_key_password=values.get("private_key_password") or None,
                encryption_key=values.get("encryption_key") or None,
                service=str(values.get("service") or "wsfe"),
                timeout=float(values.get("timeout", 30.0)),
                ticket_ttl=dt.timedelta(hours=float(values.get("ticket_ttl_hours", 12))),
                clock_skew_margin=int(values.get("clock_skew_margin", 60)),
                pacing_interval=float(values.get("pacing_interval", 1.0)),
                max_attempts=int(values.get("max_attempts", 1)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Valor inválido en la configuración AFIP: {exc}") from exc

        return config.validate()


_ENV_OVERRIDES = {
    "AFIP_CUIT": "tax_id",
    "AFIP_CERT_PATH": "certificate_path",
    "AFIP_KEY_PATH": "private_key_path",
    "AFIP_KEY_PASSWORD": "private_key_password",
    "AFIP_ENCRYPTION_KEY": "encryption_key",
    "AFIP_ENVIRONMENT": "environment",
    "AFIP_POINT_OF_SALE": "point_of_sale",
}


__all__ = [
    "AFIPConfig",
    "ConfigurationError",
    "ENDPOINTS",
    "Endpoints",
    "Environment",
]
