"""
Invoice descriptor.
"""

from envoice.kinds.base import (
    KindDescriptor,
    StatusFields,
    StatusVocabulary,
    request_predicate,
)
from envoice.models.document import DocumentKind
from envoice.services.payload import build_invoice_payload
from envoice.services.retry_service import RetryPolicy

NOT_ISSUED = "Sin Factura Electronica"
ERROR = "Error en Factura Electronica"
ISSUED = "Factura Electronica Exitosa"
CANCELLED = "Cancelado"

INVOICE = KindDescriptor(
    kind=DocumentKind.INVOICE,
    list_element="Invoice",
    query_function="IsSolicitudCol",
    lookback_days=8,
    endpoint="invoice/",
    range_type="invoice",
    fields=StatusFields(
        request="solicitud_factura",
        process="estado_factura",
        message="invoice_messages",
        external_code="tas_code",
        fiscal_reference="valor_cufe",
    ),
    vocabulary=StatusVocabulary(
        please_process="Emitir Factura Electronica",
        not_issued=NOT_ISSUED,
        error=ERROR,
        issued=ISSUED,
        in_progress="En Proceso",
        success_request=ISSUED,
        cancelled=CANCELLED,
    ),
    poll_policy=RetryPolicy(max_attempts=10, initial_delay=15.0, delay_first=True),
    build_payload=build_invoice_payload,
    predicate=request_predicate,
    allowed_states=frozenset({NOT_ISSUED, ERROR, ISSUED, CANCELLED}),
    incomplete_states=frozenset({NOT_ISSUED, ERROR}),
)
