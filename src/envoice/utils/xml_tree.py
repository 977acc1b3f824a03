"""
Helpers to turn Magaya XML documents into plain dicts and read values out of them.

Conversion rules:
    - namespaces are dropped from tag names
    - attributes are merged into the element's dict
    - text of an element that also has attributes or children is stored under "_"
    - a leaf element without attributes becomes its text ("" when empty)
    - repeated child tags become lists
"""

from typing import Any, Dict, List, Optional

from lxml import etree

TEXT_KEY = "_"

_parser = etree.XMLParser(resolve_entities=False, no_network=True, recover=False)


def _local(tag: Any) -> str:
    return etree.QName(tag).localname


def element_to_value(element) -> Any:
    """Convert one lxml element to a str or dict."""
    children = [child for child in element if isinstance(child.tag, str)]
    attributes = {_local(key): value for key, value in element.attrib.items()}
    text = (element.text or "").strip()

    if not children and not attributes:
        return text

    result: Dict[str, Any] = dict(attributes)
    for child in children:
        name = _local(child.tag)
        value = element_to_value(child)
        if name in result:
            existing = result[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[name] = [existing, value]
        else:
            result[name] = value

    if text:
        result[TEXT_KEY] = text
    return result


def parse_xml_tree(xml: str) -> Dict[str, Any]:
    """
    Parse an XML string into {root_tag: value}.

    Args:
        xml: XML document text

    Returns:
        Dict with a single key, the root element's local name

    Raises:
        etree.XMLSyntaxError: If the text is not well-formed XML
    """
    root = etree.fromstring(xml.strip().encode("utf-8"), parser=_parser)
    return {_local(root.tag): element_to_value(root)}


def find_text(xml: bytes, names: List[str]) -> Dict[str, Optional[str]]:
    """
    Return the text of the first element matching each local name, anywhere in the tree.

    Missing elements map to None; present but empty elements map to "".
    """
    root = etree.fromstring(xml, parser=_parser)
    found: Dict[str, Optional[str]] = {name: None for name in names}
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        name = _local(element.tag)
        if name in found and found[name] is None:
            found[name] = element.text or ""
    return found


def as_list(value: Any) -> List[Any]:
    """Normalise a single-or-repeated element into a list."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def dig(tree: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts; None when any step is missing."""
    value = tree
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
        if value is None:
            return None
    return value


def text_of(value: Any) -> Optional[str]:
    """Text content of a converted element, whether it is a str or an attributed dict."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get(TEXT_KEY)
        if value is None:
            return None
    return str(value)


def custom_field_map(element: Any) -> Dict[str, str]:
    """Collect CustomFields/CustomField into {InternalName: Value}."""
    fields: Dict[str, str] = {}
    for field in as_list(dig(element, "CustomFields.CustomField")):
        name = dig(field, "CustomFieldDefinition.InternalName")
        if not name:
            continue
        value = field.get("Value") if isinstance(field, dict) else None
        text = text_of(value)
        fields[str(name)] = text if text is not None else ""
    return fields
