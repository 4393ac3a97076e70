import decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

TIPO_CHOICES = [
    (1, "Factura A"),
    (2, "Nota de débito A"),
    (3, "Nota de crédito A"),
    (6, "Factura B"),
    (7, "Nota de débito B"),
    (8, "Nota de crédito B"),
    (11, "Factura C"),
    (12, "Nota de débito C"),
    (13, "Nota de crédito C"),
    (19, "Factura E"),
    (20, "Nota de débito E"),
    (21, "Nota de crédito E"),
    (51, "Factura M"),
    (52, "Nota de débito M"),
    (53, "Nota de crédito M"),
]


def importe():
    return models.DecimalField(
        decimal_places=2,
        default=decimal.Decimal("0"),
        max_digits=14,
        validators=[django.core.validators.MinValueValidator(0)],
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Comprobante",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("tipo", models.PositiveSmallIntegerField(choices=TIPO_CHOICES)),
                ("punto_venta", models.PositiveIntegerField()),
                ("numero", models.PositiveIntegerField(blank=True, null=True)),
                ("fecha_emision", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "concepto",
                    models.PositiveSmallIntegerField(
                        choices=[(1, "Productos"), (2, "Servicios"), (3, "Productos y servicios")],
                        default=1,
                    ),
                ),
                (
                    "receptor_tipo_documento",
                    models.PositiveSmallIntegerField(
                        choices=[
                            (80, "CUIT"),
                            (86, "CUIL"),
                            (87, "CDI"),
                            (94, "Pasaporte"),
                            (96, "DNI"),
                            (99, "Consumidor final"),
                        ],
                        default=99,
                    ),
                ),
                ("receptor_numero_documento", models.CharField(blank=True, default="0", max_length=20)),
                ("receptor_nombre", models.CharField(blank=True, max_length=160)),
                ("condicion_iva_receptor", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("importe_total", importe()),
                ("importe_no_gravado", importe()),
                ("importe_neto", importe()),
                ("importe_exento", importe()),
                ("importe_iva", importe()),
                ("importe_tributos", importe()),
                ("moneda", models.CharField(default="PES", max_length=3)),
                ("cotizacion", models.DecimalField(decimal_places=2, default=decimal.Decimal("1"), max_digits=12)),
                ("fecha_servicio_desde", models.DateField(blank=True, null=True)),
                ("fecha_servicio_hasta", models.DateField(blank=True, null=True)),
                ("fecha_vencimiento_pago", models.DateField(blank=True, null=True)),
                (
                    "estado_afip",
                    models.CharField(
                        choices=[
                            ("pendiente", "Pendiente"),
                            ("aprobado", "Aprobado"),
                            ("rechazado", "Rechazado"),
                            ("error", "Error"),
                        ],
                        default="pendiente",
                        max_length=12,
                    ),
                ),
                ("cae", models.CharField(blank=True, max_length=14, verbose_name="CAE")),
                ("cae_vencimiento", models.DateField(blank=True, null=True)),
                ("afip_actualizado_at", models.DateTimeField(blank=True, null=True)),
                ("notas", models.TextField(blank=True)),
            ],
            options={
                "verbose_name": "Comprobante electrónico",
                "verbose_name_plural": "Comprobantes electrónicos",
                "ordering": ("-fecha_emision", "-created_at"),
            },
        ),
        migrations.AddConstraint(
            model_name="comprobante",
            constraint=models.UniqueConstraint(
                condition=models.Q(("numero__isnull", False)),
                fields=("tipo", "punto_venta", "numero"),
                name="unique_comprobante_numero",
            ),
        ),
        migrations.CreateModel(
            name="ComprobanteAlicuota",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("alicuota", models.DecimalField(decimal_places=2, max_digits=5)),
                ("base_imponible", models.DecimalField(decimal_places=2, max_digits=14)),
                ("importe", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "comprobante",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alicuotas",
                        to="facturacion.comprobante",
                    ),
                ),
            ],
            options={
                "verbose_name": "Alícuota de IVA",
                "verbose_name_plural": "Alícuotas de IVA",
                "ordering": ("comprobante", "id"),
            },
        ),
        migrations.CreateModel(
            name="ComprobanteTributo",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("codigo", models.PositiveSmallIntegerField()),
                ("descripcion", models.CharField(blank=True, max_length=80)),
                ("base_imponible", models.DecimalField(decimal_places=2, max_digits=14)),
                ("alicuota", models.DecimalField(decimal_places=2, max_digits=5)),
                ("importe", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "comprobante",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tributos",
                        to="facturacion.comprobante",
                    ),
                ),
            ],
            options={
                "verbose_name": "Tributo",
                "verbose_name_plural": "Tributos",
                "ordering": ("comprobante", "id"),
            },
        ),
        migrations.CreateModel(
            name="ComprobanteAsociado",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("tipo", models.PositiveSmallIntegerField(choices=TIPO_CHOICES)),
                ("punto_venta", models.PositiveIntegerField()),
                ("numero", models.PositiveIntegerField()),
                ("cuit", models.CharField(blank=True, max_length=13, verbose_name="CUIT")),
                ("fecha", models.DateField(blank=True, null=True)),
                (
                    "comprobante",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="asociados",
                        to="facturacion.comprobante",
                    ),
                ),
            ],
            options={
                "verbose_name": "Comprobante asociado",
                "verbose_name_plural": "Comprobantes asociados",
                "ordering": ("comprobante", "id"),
            },
        ),
        migrations.CreateModel(
            name="IntentoAutorizacion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "resultado",
                    models.CharField(
                        choices=[("A", "Aprobado"), ("R", "Rechazado"), ("P", "Parcial"), ("E", "Error")],
                        max_length=1,
                    ),
                ),
                ("numero", models.PositiveIntegerField(blank=True, null=True)),
                ("cae", models.CharField(blank=True, max_length=14, verbose_name="CAE")),
                ("cae_vencimiento", models.DateField(blank=True, null=True)),
                ("observaciones", models.JSONField(blank=True, default=list)),
                ("errores", models.JSONField(blank=True, default=list)),
                ("detalle_error", models.TextField(blank=True)),
                (
                    "comprobante",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="intentos",
                        to="facturacion.comprobante",
                    ),
                ),
            ],
            options={
                "verbose_name": "Intento de autorización",
                "verbose_name_plural": "Intentos de autorización",
                "ordering": ("-created_at", "-id"),
            },
        ),
    ]
