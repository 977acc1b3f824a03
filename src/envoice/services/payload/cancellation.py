"""
Cancellation payload builder for the signing service.
"""

from typing import Any, Dict

from envoice.exceptions import DocumentValidationError
from envoice.models.document import Document


def build_cancellation_payload(document: Document, prefix: str = "") -> Dict[str, Any]:
    """Build the deleteInvoice request; the numbering prefix does not apply."""
    tascode = document.field("tas_code")
    description = document.field("description")
    missing = [
        name
        for name, value in (("tas_code", tascode), ("description", description))
        if not value
    ]
    if missing:
        raise DocumentValidationError(document.id, missing)

    return {"deleteInvoice": {"tascode": tascode, "description": description}}
