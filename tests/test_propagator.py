"""
Tests for custom field write-back.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from envoice.exceptions import FieldUpdateError, SourceTransportError
from envoice.kinds.invoice import INVOICE
from envoice.models.signing_responses import SubmitResult
from envoice.models.source_responses import AckResponse
from envoice.services.propagator import FieldPropagator


class TestFieldPropagator:
    def test_propagate_returns_ack(self, account):
        client = Mock()
        client.set_custom_field = AsyncMock(return_value=AckResponse(result="no_error"))

        ack = asyncio.run(
            FieldPropagator(client).propagate(account, "KEY", "101", "estado_factura", "En Proceso")
        )

        assert ack == "no_error"
        client.set_custom_field.assert_awaited_once_with(
            account, "KEY", "IN", "101", "estado_factura", "En Proceso"
        )

    def test_transport_failure_is_wrapped(self, account):
        client = Mock()
        client.set_custom_field = AsyncMock(side_effect=SourceTransportError("SetCustomFieldValue"))

        with pytest.raises(FieldUpdateError) as exc_info:
            asyncio.run(FieldPropagator(client).propagate(account, "KEY", "101", "tas_code", "T"))

        assert exc_info.value.field_name == "tas_code"

    def test_every_write_completes_before_raising(self, account):
        """One failing field does not prevent the others from being written."""

        async def write(account, key, source_type, number, field_name, value):
            if field_name == "tas_code":
                return AckResponse(result="")
            return AckResponse(result="no_error")

        client = Mock()
        client.set_custom_field = AsyncMock(side_effect=write)
        updates = {"invoice_messages": "ok", "tas_code": "TAS-1", "estado_factura": "x"}

        with pytest.raises(FieldUpdateError):
            asyncio.run(FieldPropagator(client).propagate_many(account, "KEY", "101", updates))

        assert client.set_custom_field.await_count == 3


class TestOutcomeUpdates:
    """Test the field writes derived from a submit response."""

    def test_accepted(self):
        updates = INVOICE.outcome_updates(
            SubmitResult(
                status_code=200, status_text="OK", external_code="TAS-1", fiscal_reference="CUFE-1"
            )
        )

        assert updates == {
            "invoice_messages": "OK",
            "estado_factura": "Factura Electronica Exitosa",
            "solicitud_factura": "Factura Electronica Exitosa",
            "tas_code": "TAS-1",
            "valor_cufe": "CUFE-1",
        }

    def test_rejected(self):
        updates = INVOICE.outcome_updates(SubmitResult(status_code=500, status_text="Error"))

        assert updates == {
            "invoice_messages": "Error",
            "estado_factura": "Error en Factura Electronica",
            "solicitud_factura": "Pendiente",
        }
