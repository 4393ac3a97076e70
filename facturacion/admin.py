from django.contrib import admin

from .models import (
    Comprobante,
    ComprobanteAlicuota,
    ComprobanteAsociado,
    ComprobanteTributo,
    IntentoAutorizacion,
)


class ComprobanteAlicuotaInline(admin.TabularInline):
    model = ComprobanteAlicuota
    extra = 0
    fields = ("alicuota", "base_imponible", "importe")


class ComprobanteTributoInline(admin.TabularInline):
    model = ComprobanteTributo
    extra = 0
    fields = ("codigo", "descripcion", "base_imponible", "alicuota", "importe")


class ComprobanteAsociadoInline(admin.TabularInline):
    model = ComprobanteAsociado
    extra = 0
    fields = ("tipo", "punto_venta", "numero", "cuit", "fecha")


class IntentoAutorizacionInline(admin.TabularInline):
    model = IntentoAutorizacion
    extra = 0
    can_delete = False
    fields = ("created_at", "resultado", "numero", "cae", "cae_vencimiento", "errores", "detalle_error")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Comprobante)
class ComprobanteAdmin(admin.ModelAdmin):
    list_display = (
        "__str__",
        "tipo",
        "punto_venta",
        "numero",
        "receptor_nombre",
        "importe_total",
        "estado_afip",
        "cae",
        "fecha_emision",
    )
    list_filter = ("estado_afip", "tipo", "punto_venta", "fecha_emision")
    search_fields = ("numero", "cae", "receptor_nombre", "receptor_numero_documento")
    date_hierarchy = "fecha_emision"
    readonly_fields = (
        "estado_afip",
        "cae",
        "cae_vencimiento",
        "afip_actualizado_at",
        "created_at",
        "updated_at",
    )
    fieldsets = (
        (None, {
            "fields": ("tipo", "punto_venta", "numero", "fecha_emision", "concepto")
        }),
        ("Receptor", {
            "fields": (
                "receptor_tipo_documento",
                "receptor_numero_documento",
                "receptor_nombre",
                "condicion_iva_receptor",
            )
        }),
        ("Importes", {
            "fields": (
                "importe_total",
                "importe_no_gravado",
                "importe_neto",
                "importe_exento",
                "importe_iva",
                "importe_tributos",
                "moneda",
                "cotizacion",
            )
        }),
        ("Servicios", {
            "fields": ("fecha_servicio_desde", "fecha_servicio_hasta", "fecha_vencimiento_pago"),
            "classes": ("collapse",)
        }),
        ("AFIP", {
            "fields": ("estado_afip", "cae", "cae_vencimiento", "afip_actualizado_at", "notas")
        }),
        ("Información del Sistema", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",)
        }),
    )
    inlines = [
        ComprobanteAlicuotaInline,
        ComprobanteTributoInline,
        ComprobanteAsociadoInline,
        IntentoAutorizacionInline,
    ]


@admin.register(IntentoAutorizacion)
class IntentoAutorizacionAdmin(admin.ModelAdmin):
    list_display = ("id", "comprobante", "resultado", "numero", "cae", "created_at")
    list_filter = ("resultado", "created_at")
    search_fields = ("comprobante__id", "cae")
    date_hierarchy = "created_at"
    readonly_fields = (
        "comprobante",
        "resultado",
        "numero",
        "cae",
        "cae_vencimiento",
        "observaciones",
        "errores",
        "detalle_error",
        "created_at",
        "updated_at",
    )
