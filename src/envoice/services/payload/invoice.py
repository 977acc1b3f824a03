"""
Invoice payload builder for the signing service.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from envoice.exceptions import DocumentValidationError
from envoice.models.document import Document
from envoice.services.payload.amounts import (
    item_details,
    round_amount,
    to_decimal,
    total_amounts,
    withholding_taxes,
)
from envoice.services.payload.formatting import amount_in_words, format_date, format_hour
from envoice.utils.xml_tree import as_list, custom_field_map, dig, text_of

DOMESTIC_COUNTRY = "CO"

REQUIRED_PATHS = [
    "Number",
    "CreatedOn",
    "TotalAmountInCurrency",
    "TotalAmountInCurrency.Currency",
    "Charges.Charge",
]


def missing_paths(element: Dict[str, Any], paths: List[str]) -> List[str]:
    missing = []
    for path in paths:
        value = dig(element, path)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(path)
    return missing


def _code(value: str) -> str:
    return value[:2].strip()


def customer_info(entity: Dict[str, Any], missing: List[str]) -> Dict[str, Any]:
    """Map the billed entity; every absent field is appended to ``missing``."""
    entity = entity if isinstance(entity, dict) else {}
    entity_fields = custom_field_map(entity)

    def required(value, label):
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(label)
            return None
        return value

    account_type = required(
        entity_fields.get("additionalaccountid"), "Entity.additionalaccountid"
    )
    document_type = required(entity_fields.get("documenttype"), "Entity.documenttype")
    street = required(dig(entity, "Address.Street"), "Entity.Address.Street")
    if isinstance(street, list):
        street = " ".join(text_of(line) or "" for line in street)

    return {
        "additionalAccountID": account_type[:1] if account_type else None,
        "name": required(text_of(entity.get("Name")), "Entity.Name"),
        "countryName": required(
            text_of(dig(entity, "Address.Country")), "Entity.Address.Country"
        ),
        "countryCode": required(
            dig(entity, "Address.Country.Code"), "Entity.Address.Country.Code"
        ),
        "city": required(text_of(dig(entity, "Address.City")), "Entity.Address.City"),
        "countrySubentity": required(
            text_of(dig(entity, "Address.ZipCode")), "Entity.Address.ZipCode"
        ),
        "addressLine": text_of(street) or "",
        "documentNumber": required(text_of(entity.get("EntityID")), "Entity.EntityID"),
        "documentType": _code(document_type) if document_type else None,
        "telephone": required(text_of(entity.get("Phone")), "Entity.Phone"),
        "email": required(
            entity_fields.get("correo_facturacion"), "Entity.correo_facturacion"
        ),
        "internalID": required(text_of(entity.get("GUID")), "Entity.GUID"),
    }


def exchange_rate(element: Dict[str, Any], issue_date: str, document_id: str) -> Dict[str, str]:
    """Rate expressed as 1 / ERP rate, preferring the user-entered rate when it differs."""
    system_rate = to_decimal(dig(element, "Currency.ExchangeRate"))
    user_rate = to_decimal(element.get("ExchangeRate"))
    rate = user_rate if user_rate is not None else system_rate
    if rate is None or rate == 0:
        raise DocumentValidationError(document_id, ["ExchangeRate"])
    try:
        inverse = Decimal(1) / rate
    except InvalidOperation:
        raise DocumentValidationError(document_id, ["ExchangeRate"])
    return {
        "currencyCode": text_of(dig(element, "Currency.Code")),
        "currencyRate": str(round_amount(inverse)),
        "currencyDate": issue_date,
    }


def build_invoice_payload(document: Document, prefix: str) -> Dict[str, Any]:
    """
    Map an ERP invoice into the signing service's invoice request.

    Args:
        document: Invoice loaded with its full transaction tree in ``raw``
        prefix: Active numbering prefix for invoices

    Returns:
        Request body for the invoice endpoint

    Raises:
        DocumentValidationError: If any required field is missing
    """
    element = document.raw
    missing = missing_paths(element, REQUIRED_PATHS)

    payment_code = document.field("paymentcode")
    payment_type = document.field("paymenttype")
    if not payment_code:
        missing.append("paymentcode")
    if not payment_type:
        missing.append("paymenttype")

    customer = customer_info(element.get("Entity"), missing)
    if missing:
        raise DocumentValidationError(document.id, missing)

    created_on = text_of(element.get("CreatedOn"))
    issue_date = format_date(created_on)
    issue_time = format_hour(created_on)
    if issue_date is None:
        raise DocumentValidationError(document.id, ["CreatedOn"])

    total = dig(element, "TotalAmountInCurrency")
    currency = dig(element, "TotalAmountInCurrency.Currency")
    charges = as_list(dig(element, "Charges.Charge"))

    body: Dict[str, Any] = {
        "prefix": prefix,
        "intID": document.id,
        "issueDate": issue_date,
        "issueTime": issue_time,
        "paymentType": _code(payment_type),
        "paymentCode": _code(payment_code),
        "note1": amount_in_words(text_of(total), currency),
        "customer": customer,
        "amounts": total_amounts(element),
    }
    if customer["countryCode"] != DOMESTIC_COUNTRY:
        body["exchangeRate"] = exchange_rate(element, issue_date, document.id)
    body["items"] = item_details(charges)

    withholdings = withholding_taxes(charges)
    if withholdings:
        body["whTaxes"] = withholdings

    return {"invoice": body}
