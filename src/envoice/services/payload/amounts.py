"""
Amount, line-item and withholding mapping shared by invoices and credit notes.

Every monetary value goes through round_amount (banker's rounding, two
decimals) so both document kinds compute totals the same way.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from envoice.utils.xml_tree import as_list, dig, text_of

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    text = text_of(value) if isinstance(value, dict) else str(value)
    if text is None or not text.strip():
        return None
    try:
        return Decimal(text.strip().replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {text!r}")


def round_amount(value: Any) -> Decimal:
    """Round to two decimals with ROUND_HALF_EVEN; missing values are zero."""
    number = to_decimal(value)
    if number is None:
        return ZERO.quantize(CENTS)
    return number.quantize(CENTS, rounding=ROUND_HALF_EVEN)


def format_amount(value: Any) -> str:
    return str(round_amount(value))


def total_amounts(element: Dict[str, Any]) -> Dict[str, str]:
    """Header totals: totalAmount excludes tax and includes withholdings."""
    tax_amount = round_amount(element.get("TaxAmountInCurrency"))
    retention_amount = round_amount(element.get("RetentionAmountInCurrency"))
    total_document = round_amount(element.get("TotalAmountInCurrency"))

    total_amount = round_amount(total_document - tax_amount + retention_amount)
    discount_amount = extra_amount = prepaid_amount = round_amount(ZERO)
    pay_amount = round_amount(
        total_amount - discount_amount + extra_amount + tax_amount + prepaid_amount
    )

    return {
        "totalAmount": str(total_amount),
        "discountAmount": str(discount_amount),
        "extraAmount": str(extra_amount),
        "taxAmount": str(tax_amount),
        "whTaxAmount": str(retention_amount),
        "prepaidAmount": str(prepaid_amount),
        "payAmount": str(pay_amount),
    }


def _tax_definitions(charge: Dict[str, Any]) -> List[Dict[str, Any]]:
    nested = dig(charge, "TaxDefinition.TaxDefinitions.TaxDefinition")
    return [item for item in as_list(nested) if isinstance(item, dict)]


def _tax_rate(charge: Dict[str, Any]) -> str:
    definitions = _tax_definitions(charge)
    if definitions:
        rate = "0.00"
        for definition in definitions:
            if definition.get("Type") == "Tax":
                rate = text_of(definition.get("Rate")) or rate
        return rate
    single = dig(charge, "TaxDefinition.Rate")
    return text_of(single) or "0.00"


def item_details(charges: Any) -> List[Dict[str, Any]]:
    items = []
    for charge in as_list(charges):
        items.append(
            {
                "quantity": text_of(charge.get("Quantity")),
                "unitPrice": format_amount(charge.get("PriceInCurrency")),
                "total": format_amount(charge.get("AmountInCurrency")),
                "description": text_of(dig(charge, "ChargeDefinition.Description")),
                "brand": "LF",
                "model": "Service",
                "code": text_of(dig(charge, "ChargeDefinition.Code")),
                "taxes": [
                    {
                        "ID": "01",
                        "taxAmount": format_amount(charge.get("TaxAmountInCurrency")),
                        "percent": _tax_rate(charge),
                    }
                ],
            }
        )
    return items


def withholding_taxes(charges: Any) -> List[Dict[str, Any]]:
    withholdings = []
    for charge in as_list(charges):
        retention = charge.get("RetentionAmountInCurrency")
        if retention is None:
            continue
        for definition in _tax_definitions(charge):
            if definition.get("Type") != "Retention":
                continue
            withholdings.append(
                {
                    "type": text_of(definition.get("Name")),
                    "percent": text_of(definition.get("Rate")),
                    "amount": format_amount(retention),
                }
            )
    return withholdings
