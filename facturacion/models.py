from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from facturacion.afip.documents import AssociatedDocument, FiscalDocument, OtherTributeItem, VatItem
from facturacion.afip.tables import Concept, DocumentType, IdentificationType


class TimeStampedModel(models.Model):
    """Modelo base con marcas de tiempo."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ("-created_at",)


def _importe(**kwargs) -> models.DecimalField:
    return models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        default=Decimal("0"),
        **kwargs,
    )


class Comprobante(TimeStampedModel):
    """Factura, nota de débito o nota de crédito electrónica."""

    class Tipo(models.IntegerChoices):
        FACTURA_A = DocumentType.FACTURA_A, "Factura A"
        NOTA_DEBITO_A = DocumentType.NOTA_DEBITO_A, "Nota de débito A"
        NOTA_CREDITO_A = DocumentType.NOTA_CREDITO_A, "Nota de crédito A"
        FACTURA_B = DocumentType.FACTURA_B, "Factura B"
        NOTA_DEBITO_B = DocumentType.NOTA_DEBITO_B, "Nota de débito B"
        NOTA_CREDITO_B = DocumentType.NOTA_CREDITO_B, "Nota de crédito B"
        FACTURA_C = DocumentType.FACTURA_C, "Factura C"
        NOTA_DEBITO_C = DocumentType.NOTA_DEBITO_C, "Nota de débito C"
        NOTA_CREDITO_C = DocumentType.NOTA_CREDITO_C, "Nota de crédito C"
        FACTURA_E = DocumentType.FACTURA_E, "Factura E"
        NOTA_DEBITO_E = DocumentType.NOTA_DEBITO_E, "Nota de débito E"
        NOTA_CREDITO_E = DocumentType.NOTA_CREDITO_E, "Nota de crédito E"
        FACTURA_M = DocumentType.FACTURA_M, "Factura M"
        NOTA_DEBITO_M = DocumentType.NOTA_DEBITO_M, "Nota de débito M"
        NOTA_CREDITO_M = DocumentType.NOTA_CREDITO_M, "Nota de crédito M"

    class Concepto(models.IntegerChoices):
        PRODUCTOS = Concept.GOODS, "Productos"
        SERVICIOS = Concept.SERVICES, "Servicios"
        PRODUCTOS_Y_SERVICIOS = Concept.GOODS_AND_SERVICES, "Productos y servicios"

    class TipoDocumento(models.IntegerChoices):
        CUIT = IdentificationType.CUIT, "CUIT"
        CUIL = IdentificationType.CUIL, "CUIL"
        CDI = IdentificationType.CDI, "CDI"
        LIBRETA_ENROLAMIENTO = IdentificationType.LIBRETA_ENROLAMIENTO, "Libreta de enrolamiento"
        LIBRETA_CIVICA = IdentificationType.LIBRETA_CIVICA, "Libreta cívica"
        CI_EXTRANJERA = IdentificationType.CI_EXTRANJERA, "Cédula de identidad extranjera"
        PASAPORTE = IdentificationType.PASAPORTE, "Pasaporte"
        DNI = IdentificationType.DNI, "DNI"
        CONSUMIDOR_FINAL = IdentificationType.CONSUMIDOR_FINAL, "Consumidor final"

    class EstadoAFIP(models.TextChoices):
        PENDIENTE = "pendiente", "Pendiente"
        APROBADO = "aprobado", "Aprobado"
        RECHAZADO = "rechazado", "Rechazado"
        ERROR = "error", "Error"

    tipo = models.PositiveSmallIntegerField(choices=Tipo.choices)
    punto_venta = models.PositiveIntegerField()
    numero = models.PositiveIntegerField(null=True, blank=True)
    fecha_emision = models.DateField(default=timezone.localdate)
    concepto = models.PositiveSmallIntegerField(choices=Concepto.choices, default=Concepto.PRODUCTOS)
    receptor_tipo_documento = models.PositiveSmallIntegerField(
        choices=TipoDocumento.choices,
        default=TipoDocumento.CONSUMIDOR_FINAL,
    )
    receptor_numero_documento = models.CharField(max_length=20, blank=True, default="0")
    receptor_nombre = models.CharField(max_length=160, blank=True)
    condicion_iva_receptor = models.PositiveSmallIntegerField(null=True, blank=True)
    importe_total = _importe()
    importe_no_gravado = _importe()
    importe_neto = _importe()
    importe_exento = _importe()
    importe_iva = _importe()
    importe_tributos = _importe()
    moneda = models.CharField(max_length=3, default="PES")
    cotizacion = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("1"))
    fecha_servicio_desde = models.DateField(null=True, blank=True)
    fecha_servicio_hasta = models.DateField(null=True, blank=True)
    fecha_vencimiento_pago = models.DateField(null=True, blank=True)
    estado_afip = models.CharField(max_length=12, choices=EstadoAFIP.choices, default=EstadoAFIP.PENDIENTE)
    cae = models.CharField("CAE", max_length=14, blank=True)
    cae_vencimiento = models.DateField(null=True, blank=True)
    afip_actualizado_at = models.DateTimeField(null=True, blank=True)
    notas = models.TextField(blank=True)

    class Meta:
        verbose_name = "Comprobante electrónico"
        verbose_name_plural = "Comprobantes electrónicos"
        ordering = ("-fecha_emision", "-created_at")
        constraints = [
            models.UniqueConstraint(
                fields=["tipo", "punto_venta", "numero"],
                condition=models.Q(numero__isnull=False),
                name="unique_comprobante_numero",
            )
        ]

    def __str__(self) -> str:
        numero = f"{self.numero:08d}" if self.numero else "--------"
        return f"{self.get_tipo_display()} {self.punto_venta:05d}-{numero}"

    def to_fiscal_document(self) -> FiscalDocument:
        return FiscalDocument(
            document_type=self.tipo,
            point_of_sale=self.punto_venta,
            issue_date=self.fecha_emision,
            counterparty_id_type=self.receptor_tipo_documento,
            counterparty_id_number=self.receptor_numero_documento,
            total=self.importe_total,
            net_taxed=self.importe_neto,
            non_taxed=self.importe_no_gravado,
            exempt=self.importe_exento,
            vat_amount=self.importe_iva,
            other_taxes=self.importe_tributos,
            concept=Concept(self.concepto),
            currency=self.moneda,
            exchange_rate=self.cotizacion,
            service_from=self.fecha_servicio_desde,
            service_to=self.fecha_servicio_hasta,
            payment_due=self.fecha_vencimiento_pago,
            vat_items=[
                VatItem(rate=linea.alicuota, base_amount=linea.base_imponible, amount=linea.importe)
                for linea in self.alicuotas.all()
            ],
            tributes=[
                OtherTributeItem(
                    code=tributo.codigo,
                    description=tributo.descripcion,
                    base_amount=tributo.base_imponible,
                    rate=tributo.alicuota,
                    amount=tributo.importe,
                )
                for tributo in self.tributos.all()
            ],
            associated_documents=[
                AssociatedDocument(
                    document_type=asociado.tipo,
                    point_of_sale=asociado.punto_venta,
                    number=asociado.numero,
                    tax_id=asociado.cuit or None,
                    issue_date=asociado.fecha,
                )
                for asociado in self.asociados.all()
            ],
            receiver_vat_condition=self.condicion_iva_receptor,
            reference=str(self.pk),
        )


class ComprobanteAlicuota(TimeStampedModel):
    """Base imponible e IVA por alícuota."""

    comprobante = models.ForeignKey(Comprobante, on_delete=models.CASCADE, related_name="alicuotas")
    alicuota = models.DecimalField(max_digits=5, decimal_places=2)
    base_imponible = models.DecimalField(max_digits=14, decimal_places=2)
    importe = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        verbose_name = "Alícuota de IVA"
        verbose_name_plural = "Alícuotas de IVA"
        ordering = ("comprobante", "id")

    def __str__(self) -> str:
        return f"IVA {self.alicuota}%: {self.importe}"


class ComprobanteTributo(TimeStampedModel):
    comprobante = models.ForeignKey(Comprobante, on_delete=models.CASCADE, related_name="tributos")
    codigo = models.PositiveSmallIntegerField()
    descripcion = models.CharField(max_length=80, blank=True)
    base_imponible = models.DecimalField(max_digits=14, decimal_places=2)
    alicuota = models.DecimalField(max_digits=5, decimal_places=2)
    importe = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        verbose_name = "Tributo"
        verbose_name_plural = "Tributos"
        ordering = ("comprobante", "id")

    def __str__(self) -> str:
        return f"{self.descripcion or self.codigo}: {self.importe}"


class ComprobanteAsociado(TimeStampedModel):
    comprobante = models.ForeignKey(Comprobante, on_delete=models.CASCADE, related_name="asociados")
    tipo = models.PositiveSmallIntegerField(choices=Comprobante.Tipo.choices)
    punto_venta = models.PositiveIntegerField()
    numero = models.PositiveIntegerField()
    cuit = models.CharField("CUIT", max_length=13, blank=True)
    fecha = models.DateField(null=True, blank=True)

    class Meta:
        verbose_name = "Comprobante asociado"
        verbose_name_plural = "Comprobantes asociados"
        ordering = ("comprobante", "id")

    def __str__(self) -> str:
        return f"{self.tipo} {self.punto_venta:05d}-{self.numero:08d}"


class IntentoAutorizacion(TimeStampedModel):
    """Registro de auditoría: una fila por cada intento de obtener CAE."""

    class Resultado(models.TextChoices):
        APROBADO = "A", "Aprobado"
        RECHAZADO = "R", "Rechazado"
        PARCIAL = "P", "Parcial"
        ERROR = "E", "Error"

    comprobante = models.ForeignKey(Comprobante, on_delete=models.CASCADE, related_name="intentos")
    resultado = models.CharField(max_length=1, choices=Resultado.choices)
    numero = models.PositiveIntegerField(null=True, blank=True)
    cae = models.CharField("CAE", max_length=14, blank=True)
    cae_vencimiento = models.DateField(null=True, blank=True)
    observaciones = models.JSONField(default=list, blank=True)
    errores = models.JSONField(default=list, blank=True)
    detalle_error = models.TextField(blank=True)

    class Meta:
        verbose_name = "Intento de autorización"
        verbose_name_plural = "Intentos de autorización"
        ordering = ("-created_at", "-id")

    def __str__(self) -> str:
        return f"{self.comprobante_id} / {self.get_resultado_display()}"
