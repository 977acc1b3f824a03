"""
Field-mapping collaborators that turn ERP documents into signing-service requests.
"""

from envoice.services.payload.cancellation import build_cancellation_payload
from envoice.services.payload.credit_note import build_credit_note_payload
from envoice.services.payload.invoice import build_invoice_payload

__all__ = [
    "build_invoice_payload",
    "build_credit_note_payload",
    "build_cancellation_payload",
]
