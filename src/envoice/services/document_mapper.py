"""
Builds Document models from converted Magaya transaction elements.
"""

from typing import Any, Dict, Optional

from lxml import etree

from envoice.exceptions import SourceProtocolError
from envoice.kinds.base import KindDescriptor
from envoice.models.document import Document
from envoice.utils.xml_tree import custom_field_map, parse_xml_tree, text_of


def document_from_element(
    descriptor: KindDescriptor,
    element: Dict[str, Any],
    number: Optional[str] = None,
    global_id: Optional[str] = None,
) -> Document:
    """
    Map a transaction element onto a Document, reading the status fields named by the kind.

    Args:
        descriptor: Kind whose field names are used
        element: Converted transaction element (see envoice.utils.xml_tree)
        number: Document number when already known from the list
        global_id: GUID when already known from the list
    """
    fields = custom_field_map(element)
    names = descriptor.fields
    fiscal_reference = None
    if names.fiscal_reference:
        fiscal_reference = fields.get(names.fiscal_reference) or None
    return Document(
        id=number or text_of(element.get("Number")) or "",
        kind=descriptor.kind,
        global_id=element.get("GUID") or global_id,
        request_state=fields.get(names.request) or None,
        process_state=fields.get(names.process) or None,
        external_code=fields.get(names.external_code) or None,
        fiscal_reference=fiscal_reference,
        notes=text_of(element.get("Notes")),
        custom_fields=fields,
        raw=element,
    )


def parse_transaction(operation: str, xml: str) -> Dict[str, Any]:
    """Parse a transaction XML document and return its root element."""
    try:
        tree = parse_xml_tree(xml)
    except etree.XMLSyntaxError as e:
        raise SourceProtocolError(operation, f"malformed transaction XML: {e}") from e
    element = next(iter(tree.values()))
    if not isinstance(element, dict):
        raise SourceProtocolError(operation, "transaction element is empty")
    return element
