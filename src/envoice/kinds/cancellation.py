"""
Cancellation descriptor.

A cancellation acts on an already issued invoice: the request is signalled by
the ANULADA marker in the invoice notes rather than by a request label, and its
outcome is written onto the invoice's own status fields.
"""

from typing import Tuple

from envoice.kinds.base import KindDescriptor, StatusFields, StatusVocabulary
from envoice.kinds.invoice import INVOICE
from envoice.models.document import Document, DocumentKind
from envoice.services.payload import build_cancellation_payload
from envoice.services.retry_service import RetryPolicy

VOID_MARKER = "ANULADA"
CANCELLED = "Cancelado"
IN_PROGRESS = "En Proceso de Cancelación"


def voided_predicate(descriptor: KindDescriptor, document: Document) -> Tuple[bool, str]:
    """Eligible iff the notes carry the void marker and a code or description exists."""
    if not document.notes or VOID_MARKER not in document.notes:
        return False, "notes do not carry the void marker"
    if CANCELLED in (document.process_state, document.request_state):
        return False, "already cancelled"
    if not (document.field("tas_code") or document.field("description")):
        return False, "no tas_code or description"
    return True, "void requested"


CANCELLATION = KindDescriptor(
    kind=DocumentKind.CANCELLATION,
    list_element="Invoice",
    query_function="IsCancelacionCol",
    lookback_days=30,
    endpoint="creditNote/",
    record_kind=DocumentKind.INVOICE,
    fields=StatusFields(
        request="solicitud_factura",
        process="estado_factura",
        message="avisos_cancelaciones",
        external_code="tas_cancel",
        in_progress="solicitud_factura",
    ),
    vocabulary=StatusVocabulary(
        please_process=None,
        not_issued=None,
        error="Error de Cancelación",
        issued=CANCELLED,
        in_progress=IN_PROGRESS,
        success_request=CANCELLED,
        cancelled=CANCELLED,
    ),
    poll_policy=RetryPolicy(max_attempts=5, initial_delay=5.0, delay_first=True),
    build_payload=build_cancellation_payload,
    predicate=voided_predicate,
    tracks_state=False,
    attach_on_confirm=False,
    persist_before_confirm=False,
    allowed_states=INVOICE.allowed_states,
    incomplete_states=frozenset(),
)
