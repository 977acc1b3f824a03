"""
Tests for the signing-service payload builders.
"""

from decimal import Decimal

import pytest

from envoice.exceptions import DocumentValidationError
from envoice.kinds.cancellation import CANCELLATION
from envoice.kinds.credit_note import CREDIT_NOTE
from envoice.kinds.invoice import INVOICE
from envoice.services.document_mapper import document_from_element, parse_transaction
from envoice.services.payload import (
    build_cancellation_payload,
    build_credit_note_payload,
    build_invoice_payload,
)
from envoice.services.payload.amounts import round_amount, total_amounts
from envoice.services.payload.formatting import amount_in_words, format_date, format_hour

from conftest import invoice_xml

INVOICE_FIELDS = {
    "solicitud_factura": "Emitir Factura Electronica",
    "estado_factura": "Sin Factura Electronica",
    "paymentcode": "10 - Efectivo",
    "paymenttype": "1 - Contado",
}


def load(descriptor, xml):
    element = parse_transaction("GetTransaction", xml)
    return document_from_element(descriptor, element)


class TestFormatting:
    """Test date, hour and amount formatting."""

    def test_date_and_hour_keep_wall_clock(self):
        assert format_date("2024-03-05T14:30:15-05:00") == "20240305"
        assert format_hour("2024-03-05T14:30:15-05:00") == "143015"

    def test_invalid_timestamp(self):
        assert format_date("not a date") is None
        assert format_date("") is None

    def test_amount_in_words(self):
        assert amount_in_words("1200.50", "USD") == "mil doscientos con 50/100 USD"
        assert amount_in_words("100", "COP") == "cien COP"
        assert amount_in_words("2,000,021", "COP") == "dos millones veinte y uno COP"

    def test_amount_in_words_rejects_garbage(self):
        with pytest.raises(ValueError):
            amount_in_words("abc", "USD")


class TestAmounts:
    """Test banker's rounding and header totals."""

    def test_round_half_even(self):
        assert round_amount("2.345") == Decimal("2.34")
        assert round_amount("2.355") == Decimal("2.36")
        assert round_amount(None) == Decimal("0.00")

    def test_total_amounts_exclude_tax(self):
        amounts = total_amounts(
            {
                "TotalAmountInCurrency": "1200.50",
                "TaxAmountInCurrency": "190.00",
                "RetentionAmountInCurrency": "10.00",
            }
        )
        assert amounts["totalAmount"] == "1020.50"
        assert amounts["taxAmount"] == "190.00"
        assert amounts["whTaxAmount"] == "10.00"
        assert amounts["payAmount"] == "1210.50"


class TestInvoicePayload:
    """Test invoice request mapping."""

    def test_domestic_invoice(self):
        document = load(INVOICE, invoice_xml(fields=INVOICE_FIELDS))

        payload = build_invoice_payload(document, "SETT")["invoice"]

        assert payload["prefix"] == "SETT"
        assert payload["intID"] == "101"
        assert payload["issueDate"] == "20240305"
        assert payload["issueTime"] == "143015"
        assert payload["paymentCode"] == "10"
        assert payload["paymentType"] == "1"
        assert payload["note1"] == "mil doscientos con 50/100 USD"
        assert payload["customer"]["documentType"] == "31"
        assert payload["customer"]["additionalAccountID"] == "1"
        assert payload["customer"]["countryCode"] == "CO"
        assert payload["customer"]["internalID"] == "entity-guid-1"
        assert payload["amounts"]["totalAmount"] == "1010.50"
        assert payload["items"][0]["taxes"][0]["percent"] == "19.00"
        assert "exchangeRate" not in payload
        assert "whTaxes" not in payload

    def test_foreign_customer_gets_exchange_rate(self):
        document = load(INVOICE, invoice_xml(fields=INVOICE_FIELDS, country_code="US"))

        payload = build_invoice_payload(document, "SETT")["invoice"]

        assert payload["exchangeRate"] == {
            "currencyCode": "USD",
            "currencyRate": "4000.00",
            "currencyDate": "20240305",
        }

    def test_missing_fields_are_all_reported(self):
        fields = dict(INVOICE_FIELDS)
        del fields["paymentcode"]
        document = load(INVOICE, invoice_xml(fields=fields, charges=""))

        with pytest.raises(DocumentValidationError) as exc_info:
            build_invoice_payload(document, "SETT")

        assert "paymentcode" in exc_info.value.missing
        assert "Charges.Charge" in exc_info.value.missing


class TestCreditNotePayload:
    """Test credit note request mapping."""

    def test_credit_note(self):
        fields = {
            "discrepancycode": "2 - Anulacion",
            "note2": "Wrong consignee",
            "tas_code_factura": "TAS-INV-1",
        }
        document = load(CREDIT_NOTE, invoice_xml(number="CM-7", fields=fields, tag="CreditMemo"))

        payload = build_credit_note_payload(document, "NC")["creditNote"]

        assert payload["tascode"] == "TAS-INV-1"
        assert payload["discrepancyCode"] == "2"
        assert payload["note2"] == "Wrong consignee"
        assert payload["intID"] == "CM-7"

    def test_credit_note_requires_invoice_reference(self):
        document = load(
            CREDIT_NOTE,
            invoice_xml(number="CM-7", fields={"discrepancycode": "2", "note2": "x"}, tag="CreditMemo"),
        )

        with pytest.raises(DocumentValidationError) as exc_info:
            build_credit_note_payload(document, "NC")

        assert exc_info.value.missing == ["tas_code_factura"]


class TestCancellationPayload:
    """Test the deleteInvoice request."""

    def test_cancellation(self):
        document = load(
            CANCELLATION,
            invoice_xml(fields={"tas_code": "TAS-1", "description": "Duplicated"}),
        )

        assert build_cancellation_payload(document) == {
            "deleteInvoice": {"tascode": "TAS-1", "description": "Duplicated"}
        }

    def test_cancellation_needs_both_fields(self):
        document = load(CANCELLATION, invoice_xml(fields={"tas_code": "TAS-1"}))

        with pytest.raises(DocumentValidationError):
            build_cancellation_payload(document)
