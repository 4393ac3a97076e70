"""Tests for facturacion.afip.builder."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from django.test import SimpleTestCase

from facturacion.afip import builder
from facturacion.afip.documents import AssociatedDocument, OtherTributeItem, VatItem
from facturacion.afip.tables import Concept, DocumentType, IdentificationType, VatCondition

from .helpers import RECEIVER_CUIT, invoice_b


class VatBreakdownTests(SimpleTestCase):
    def test_single_rate_over_net(self) -> None:
        rows = builder.vat_breakdown(invoice_b())

        self.assertEqual(rows, [{"Id": 5, "BaseImp": Decimal("1000.00"), "Importe": Decimal("210.00")}])

    def test_rate_codes(self) -> None:
        expected = {"0": 3, "2.5": 9, "5": 8, "10.5": 4, "21": 5, "27": 6}
        for rate, code in expected.items():
            with self.subTest(rate=rate):
                self.assertEqual(builder.vat_code(Decimal(rate)), code)

    def test_unsupported_rate(self) -> None:
        with self.assertRaises(builder.UnsupportedTaxRateError):
            builder.vat_code(Decimal("15"))

    def test_items_with_same_rate_are_aggregated(self) -> None:
        document = invoice_b(
            vat_rate=None,
            total=Decimal("1320.50"),
            net_taxed=Decimal("1100.00"),
            vat_amount=Decimal("220.50"),
            vat_items=[
                VatItem(rate=Decimal("21"), base_amount=Decimal("600")),
                VatItem(rate=Decimal("10.5"), base_amount=Decimal("100"), amount=Decimal("10.50")),
                VatItem(rate=Decimal("21"), base_amount=Decimal("400")),
            ],
        )

        rows = builder.vat_breakdown(document)

        self.assertEqual(
            rows,
            [
                {"Id": 5, "BaseImp": Decimal("1000.00"), "Importe": Decimal("210.00")},
                {"Id": 4, "BaseImp": Decimal("100.00"), "Importe": Decimal("10.50")},
            ],
        )

    def test_class_c_documents_do_not_discriminate_vat(self) -> None:
        document = invoice_b(
            document_type=DocumentType.FACTURA_C,
            vat_rate=None,
            total=Decimal("1000.00"),
            net_taxed=Decimal("1000.00"),
            vat_amount=Decimal("0"),
        )
        self.assertEqual(builder.vat_breakdown(document), [])

        with self.assertRaises(builder.MappingError):
            builder.vat_breakdown(invoice_b(document_type=DocumentType.FACTURA_C))

    def test_net_without_rates(self) -> None:
        with self.assertRaises(builder.MappingError):
            builder.vat_breakdown(invoice_b(vat_rate=None))


class ValidateDocumentTests(SimpleTestCase):
    def test_unsupported_document_type(self) -> None:
        with self.assertRaises(builder.UnsupportedDocumentTypeError):
            builder.validate_document(invoice_b(document_type=99))

    def test_total_must_match_components(self) -> None:
        with self.assertRaises(builder.DocumentTotalsError):
            builder.validate_document(invoice_b(total=Decimal("1209.50")))

    def test_rounding_within_one_cent_is_accepted(self) -> None:
        builder.validate_document(invoice_b(total=Decimal("1210.01")))

    def test_vat_amount_must_match_breakdown(self) -> None:
        document = invoice_b(
            vat_rate=None,
            vat_items=[VatItem(rate=Decimal("21"), base_amount=Decimal("1000"), amount=Decimal("200"))],
        )
        with self.assertRaises(builder.DocumentTotalsError):
            builder.validate_document(document)

    def test_tributes_must_match_other_taxes(self) -> None:
        document = invoice_b(
            total=Decimal("1240.00"),
            other_taxes=Decimal("30.00"),
            tributes=[OtherTributeItem(code=7, base_amount=Decimal("1000"), rate=Decimal("2"), amount=Decimal("20"))],
        )
        with self.assertRaises(builder.DocumentTotalsError):
            builder.validate_document(document)

    def test_services_require_period(self) -> None:
        with self.assertRaises(builder.MappingError):
            builder.validate_document(invoice_b(concept=Concept.SERVICES))

    def test_receiver_cuit_is_validated(self) -> None:
        document = invoice_b(
            document_type=DocumentType.FACTURA_A,
            counterparty_id_type=IdentificationType.CUIT,
            counterparty_id_number="30-71234568-0",
        )
        with self.assertRaises(builder.MappingError):
            builder.validate_document(document)

    def test_unknown_receiver_vat_condition(self) -> None:
        with self.assertRaises(builder.MappingError):
            builder.validate_document(invoice_b(receiver_vat_condition=2))

    def test_credit_note_requires_associated_document(self) -> None:
        with self.assertRaises(builder.MappingError):
            builder.validate_document(invoice_b(document_type=DocumentType.NOTA_CREDITO_B))

    def test_exchange_rate_must_be_positive(self) -> None:
        with self.assertRaises(builder.MappingError):
            builder.validate_document(invoice_b(currency="DOL", exchange_rate=Decimal("0")))


class BuildRequestTests(SimpleTestCase):
    def test_single_document_request(self) -> None:
        fields = builder.build(invoice_b(), 43)

        self.assertEqual(fields["FeCabReq"], {"CantReg": 1, "PtoVta": 1, "CbteTipo": 6})
        self.assertEqual(len(fields["FeDetReq"]), 1)
        detail = fields["FeDetReq"][0]
        self.assertEqual(detail["CbteDesde"], 43)
        self.assertEqual(detail["CbteHasta"], 43)
        self.assertEqual(detail["DocTipo"], 99)
        self.assertEqual(detail["DocNro"], 0)
        self.assertEqual(detail["MonId"], "PES")
        self.assertEqual(detail["ImpTotal"], Decimal("1210.00"))
        self.assertNotIn("FchServDesde", detail)

    def test_invoice_a_with_services(self) -> None:
        document = invoice_b(
            document_type=DocumentType.FACTURA_A,
            counterparty_id_type=IdentificationType.CUIT,
            counterparty_id_number="30-71234568-9",
            concept=Concept.SERVICES,
            service_from=dt.date(2026, 10, 1),
            service_to=dt.date(2026, 10, 31),
            payment_due=dt.date(2026, 11, 10),
            receiver_vat_condition=VatCondition.RESPONSABLE_INSCRIPTO,
            currency="USD",
            exchange_rate=Decimal("1015.5"),
        )

        detail = builder.build(document, 7)["FeDetReq"][0]

        self.assertEqual(detail["DocNro"], int(RECEIVER_CUIT))
        self.assertEqual(detail["Concepto"], 2)
        self.assertEqual(detail["FchServDesde"], dt.date(2026, 10, 1))
        self.assertEqual(detail["FchVtoPago"], dt.date(2026, 11, 10))
        self.assertEqual(detail["CondicionIVAReceptorId"], 1)
        self.assertEqual(detail["MonId"], "DOL")
        self.assertEqual(detail["MonCotiz"], Decimal("1015.50"))

    def test_credit_note_references(self) -> None:
        document = invoice_b(
            document_type=DocumentType.NOTA_CREDITO_B,
            associated_documents=[
                AssociatedDocument(document_type=6, point_of_sale=1, number=41, issue_date=dt.date(2026, 10, 1)),
            ],
        )

        detail = builder.build(document, 2)["FeDetReq"][0]

        self.assertEqual(
            detail["CbtesAsoc"],
            [{"Tipo": 6, "PtoVta": 1, "Nro": 41, "Cuit": None, "CbteFch": dt.date(2026, 10, 1)}],
        )
