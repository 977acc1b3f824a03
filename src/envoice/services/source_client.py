"""
Magaya SOAP client.

Every call posts a SOAP 1.1 envelope to the account's endpoint and maps the
response nodes onto the typed schemas in envoice.models.source_responses.
The HTTP exchange is blocking and runs in the default executor.
"""

import asyncio
from typing import Dict, List, Optional, Sequence, Tuple

import requests
from loguru import logger
from lxml import etree

from envoice.exceptions import AuthenticationError, SourceProtocolError, SourceTransportError
from envoice.models.account import Account
from envoice.models.source_responses import (
    ACCESS_DENIED,
    AckResponse,
    FirstPageResponse,
    NextPageResponse,
    SessionResponse,
    TransactionResponse,
)
from envoice.utils.xml_tree import find_text

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
MAGAYA_NS = "http://www.magaya.com/XMLSchema/V1"

# Query flags understood by the Magaya CS API
LIST_FLAGS = "524288"
CLASSIFY_FLAGS = "90"
PAYLOAD_FLAGS = "45"
ATTACHMENT_FLAGS = "4"


def build_envelope(operation: str, params: Sequence[Tuple[str, Optional[str]]]) -> bytes:
    """Build ``<soap:Envelope><soap:Body><{operation}In>...`` with escaped parameter text."""
    envelope = etree.Element(etree.QName(SOAP_NS, "Envelope"), nsmap={"soap": SOAP_NS})
    body = etree.SubElement(envelope, etree.QName(SOAP_NS, "Body"))
    request = etree.SubElement(body, f"{operation}In")
    for name, value in params:
        child = etree.SubElement(request, name)
        child.text = "" if value is None else str(value)
    return etree.tostring(envelope, xml_declaration=True, encoding="utf-8")


def build_attachment_xml(name: str, extension: str, data_b64: str) -> str:
    """Attachment document expected by SetAttachment, with the payload in a CDATA block."""
    attachment = etree.Element(etree.QName(MAGAYA_NS, "Attachment"), nsmap={None: MAGAYA_NS})
    for tag, text in (("Name", name), ("Extension", extension), ("IsImage", "false")):
        etree.SubElement(attachment, etree.QName(MAGAYA_NS, tag)).text = text
    etree.SubElement(attachment, etree.QName(MAGAYA_NS, "Data")).text = etree.CDATA(data_b64)
    return etree.tostring(attachment, encoding="unicode")


class MagayaClient:
    """SOAP client for the Magaya CS API."""

    def __init__(self, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._session = session or requests.Session()

    def _post(self, url: str, operation: str, envelope: bytes) -> bytes:
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": f"#{operation}",
        }
        try:
            response = self._session.post(
                url, data=envelope, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise SourceTransportError(operation, original_exception=e) from e
        return response.content

    async def _call(
        self,
        url: str,
        operation: str,
        params: Sequence[Tuple[str, Optional[str]]],
        nodes: List[str],
    ) -> Dict[str, Optional[str]]:
        envelope = build_envelope(operation, params)
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, self._post, url, operation, envelope)
        try:
            return find_text(content, nodes)
        except etree.XMLSyntaxError as e:
            raise SourceProtocolError(operation, f"malformed response: {e}") from e

    async def start_session(self, account: Account) -> str:
        """
        Open a session and return its access key.

        Raises:
            AuthenticationError: If access is denied or no access key comes back
        """
        nodes = await self._call(
            account.source_url,
            "StartSession",
            [("user", account.source_user), ("pass", account.source_password)],
            ["return", "access_key"],
        )
        response = SessionResponse.from_nodes(nodes)
        if response.result == ACCESS_DENIED:
            raise AuthenticationError(account.name, "access denied")
        if not response.access_key:
            raise AuthenticationError(account.name, "empty access key")
        logger.info(f"Session started for account {account.name}")
        return response.access_key

    async def first_page(
        self,
        account: Account,
        access_key: str,
        source_type: str,
        start_date: str,
        end_date: str,
        function: str,
        flags: str = LIST_FLAGS,
    ) -> FirstPageResponse:
        nodes = await self._call(
            account.source_url,
            "GetFirstTransbyDateJS",
            [
                ("access_key", access_key),
                ("type", source_type),
                ("start_date", start_date),
                ("end_date", end_date),
                ("flags", flags),
                ("record_quantity", "1"),
                ("backwards_order", "76"),
                ("function", function),
                ("xml_params", ""),
            ],
            ["return", "cookie", "more_results"],
        )
        return FirstPageResponse.from_nodes(nodes)

    async def next_page(self, account: Account, cookie: str) -> NextPageResponse:
        nodes = await self._call(
            account.source_url,
            "GetNextTransbyDate",
            [("cookie", cookie)],
            ["cookie", "trans_list_xml", "more_results"],
        )
        return NextPageResponse.from_nodes(nodes)

    async def get_transaction(
        self,
        account: Account,
        access_key: str,
        source_type: str,
        number: str,
        flags: str = CLASSIFY_FLAGS,
    ) -> TransactionResponse:
        nodes = await self._call(
            account.source_url,
            "GetTransaction",
            [
                ("access_key", access_key),
                ("type", source_type),
                ("flags", flags),
                ("number", number),
            ],
            ["return", "trans_xml"],
        )
        return TransactionResponse.from_nodes(nodes)

    async def set_custom_field(
        self,
        account: Account,
        access_key: str,
        source_type: str,
        number: str,
        field_name: str,
        value: str,
    ) -> AckResponse:
        operation = "SetCustomFieldValue"
        nodes = await self._call(
            account.source_url,
            operation,
            [
                ("access_key", access_key),
                ("type", source_type),
                ("number", number),
                ("field_internal_name", field_name),
                ("field_value", value),
            ],
            ["return"],
        )
        return AckResponse.from_nodes(operation, nodes)

    async def set_attachment(
        self,
        account: Account,
        access_key: str,
        source_type: str,
        number: str,
        attachment_xml: str,
    ) -> AckResponse:
        operation = "SetAttachment"
        nodes = await self._call(
            account.source_url,
            operation,
            [
                ("access_key", access_key),
                ("flags", ATTACHMENT_FLAGS),
                ("type", source_type),
                ("number", number),
                ("attach_xml", attachment_xml),
            ],
            ["return"],
        )
        return AckResponse.from_nodes(operation, nodes)
