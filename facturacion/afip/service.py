"""Persist authorization outcomes on the Comprobante records."""

from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from facturacion.models import Comprobante, IntentoAutorizacion

from .batch import BatchAuthorizer, FixedIntervalPacer, RetryPolicy
from .client import AuthorizationClient
from .config import AFIPConfig
from .documents import AuthorizationResult, FiscalDocument

logger = logging.getLogger(__name__)

_OUTCOME_TO_ATTEMPT = {
    "A": IntentoAutorizacion.Resultado.APROBADO,
    "R": IntentoAutorizacion.Resultado.RECHAZADO,
    "P": IntentoAutorizacion.Resultado.PARCIAL,
}


def load_fiscal_document(document_id: int) -> FiscalDocument:
    comprobante = Comprobante.objects.prefetch_related("alicuotas", "tributos", "asociados").get(pk=document_id)
    if comprobante.estado_afip == Comprobante.EstadoAFIP.APROBADO:
        raise ValueError(f"El comprobante {document_id} ya tiene CAE {comprobante.cae}")
    return comprobante.to_fiscal_document()


def pending_document_ids(limit: Optional[int] = None) -> list[int]:
    queryset = (
        Comprobante.objects.filter(estado_afip=Comprobante.EstadoAFIP.PENDIENTE)
        .order_by("fecha_emision", "id")
        .values_list("id", flat=True)
    )
    if limit:
        queryset = queryset[:limit]
    return list(queryset)


class DjangoResultRecorder:
    """Append an attempt row and update the invoice status in one transaction."""

    @transaction.atomic
    def record(self, document_id: int, result: AuthorizationResult) -> IntentoAutorizacion:
        comprobante = Comprobante.objects.select_for_update().get(pk=document_id)
        intento = IntentoAutorizacion.objects.create(
            comprobante=comprobante,
            resultado=_OUTCOME_TO_ATTEMPT[result.outcome.value],
            numero=result.number,
            cae=result.authorization_code or "",
            cae_vencimiento=result.authorization_expiry,
            observaciones=[item.as_dict() for item in result.observations],
            errores=[item.as_dict() for item in result.errors],
        )

        if comprobante.estado_afip == Comprobante.EstadoAFIP.APROBADO:
            logger.warning("AFIP: comprobante %s ya aprobado, se conserva el CAE %s", comprobante.pk, comprobante.cae)
            return intento

        if result.approved:
            comprobante.estado_afip = Comprobante.EstadoAFIP.APROBADO
            comprobante.numero = result.number
            comprobante.cae = result.authorization_code or ""
            comprobante.cae_vencimiento = result.authorization_expiry
        else:
            comprobante.estado_afip = Comprobante.EstadoAFIP.RECHAZADO
        comprobante.afip_actualizado_at = timezone.now()
        comprobante.save(update_fields=[
            "estado_afip",
            "numero",
            "cae",
            "cae_vencimiento",
            "afip_actualizado_at",
            "updated_at",
        ])
        return intento

    @transaction.atomic
    def record_failure(self, document_id: int, exc: BaseException) -> Optional[IntentoAutorizacion]:
        try:
            comprobante = Comprobante.objects.select_for_update().get(pk=document_id)
        except Comprobante.DoesNotExist:
            logger.error("AFIP: comprobante %s no encontrado al registrar el error", document_id)
            return None

        errores = [
            {"code": item.get("Code"), "message": item.get("Msg")}
            for item in getattr(exc, "errors", None) or []
        ]
        intento = IntentoAutorizacion.objects.create(
            comprobante=comprobante,
            resultado=IntentoAutorizacion.Resultado.ERROR,
            # Set when FECAESolicitar went out without a confirmed answer.
            numero=getattr(exc, "number", None),
            errores=errores,
            detalle_error=f"{type(exc).__name__}: {exc}",
        )

        if comprobante.estado_afip != Comprobante.EstadoAFIP.APROBADO:
            comprobante.estado_afip = Comprobante.EstadoAFIP.ERROR
            comprobante.afip_actualizado_at = timezone.now()
            comprobante.save(update_fields=["estado_afip", "afip_actualizado_at", "updated_at"])
        return intento


def build_batch_authorizer(
    config: Optional[AFIPConfig] = None,
    *,
    client: Optional[AuthorizationClient] = None,
    pacing_interval: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> BatchAuthorizer:
    config = config or AFIPConfig.from_settings()
    return BatchAuthorizer(
        client or AuthorizationClient(config),
        load_fiscal_document,
        recorder=DjangoResultRecorder(),
        pacer=FixedIntervalPacer(config.pacing_interval if pacing_interval is None else pacing_interval),
        retry_policy=RetryPolicy(max_attempts=max_attempts or config.max_attempts),
    )


__all__ = [
    "DjangoResultRecorder",
    "build_batch_authorizer",
    "load_fiscal_document",
    "pending_document_ids",
]
