"""
Credit note payload builder for the signing service.
"""

from typing import Any, Dict

from envoice.exceptions import DocumentValidationError
from envoice.models.document import Document
from envoice.services.payload.amounts import item_details, total_amounts, withholding_taxes
from envoice.services.payload.formatting import amount_in_words, format_date, format_hour
from envoice.services.payload.invoice import missing_paths
from envoice.utils.xml_tree import as_list, dig, text_of

REQUIRED_PATHS = [
    "Number",
    "CreatedOn",
    "TotalAmountInCurrency",
    "TotalAmountInCurrency.Currency",
    "Charges.Charge",
]

# Custom fields carried by a credit memo: correction reason, free note, and
# the tascode of the invoice being corrected.
REQUIRED_FIELDS = ["discrepancycode", "note2", "tas_code_factura"]


def build_credit_note_payload(document: Document, prefix: str) -> Dict[str, Any]:
    """Map an ERP credit memo into the signing service's credit note request."""
    element = document.raw
    missing = missing_paths(element, REQUIRED_PATHS)
    missing.extend(name for name in REQUIRED_FIELDS if not document.field(name))
    if missing:
        raise DocumentValidationError(document.id, missing)

    created_on = text_of(element.get("CreatedOn"))
    issue_date = format_date(created_on)
    if issue_date is None:
        raise DocumentValidationError(document.id, ["CreatedOn"])

    total = dig(element, "TotalAmountInCurrency")
    currency = dig(element, "TotalAmountInCurrency.Currency")
    charges = as_list(dig(element, "Charges.Charge"))

    body: Dict[str, Any] = {
        "prefix": prefix,
        "tascode": document.field("tas_code_factura"),
        "intID": document.id,
        "issueDate": issue_date,
        "issueTime": format_hour(created_on),
        "discrepancyCode": document.field("discrepancycode")[:2].strip(),
        "note1": amount_in_words(text_of(total), currency),
        "note2": document.field("note2"),
        "amounts": total_amounts(element),
        "items": item_details(charges),
    }

    withholdings = withholding_taxes(charges)
    if withholdings:
        body["whTaxes"] = withholdings

    return {"creditNote": body}
