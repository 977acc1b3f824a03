"""
Date-windowed paginated fetcher.

Walks one-day windows over a kind's lookback horizon, oldest first. Each
window opens a cursor with GetFirstTransbyDateJS and follows it with
GetNextTransbyDate until the server reports no more results, the cookie is
gone or a page comes back empty. Documents are keyed by number; the first
occurrence wins.
"""

from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from loguru import logger
from lxml import etree

from envoice.exceptions import (
    ExternalServiceException,
    InfrastructureException,
    SourceProtocolError,
)
from envoice.kinds.base import KindDescriptor
from envoice.models.account import Account
from envoice.models.document import Document
from envoice.observability import record_fetch_window
from envoice.services.document_mapper import document_from_element
from envoice.services.source_client import MagayaClient
from envoice.utils.xml_tree import as_list, parse_xml_tree, text_of

DATE_FORMAT = "%Y-%m-%d"
NO_MORE_RESULTS = "0"


def fetch_windows(lookback_days: int, today: date) -> List[Tuple[str, str]]:
    """
    Single-day windows [today - i, today - i + 1) for i = lookback_days..1.

    Args:
        lookback_days: Number of days to look back
        today: Reference date (the window ending today is the last one)

    Returns:
        List of (start_date, end_date) strings, oldest first
    """
    windows = []
    for i in range(lookback_days, 0, -1):
        start = today - timedelta(days=i)
        end = today - timedelta(days=i - 1)
        windows.append((start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT)))
    return windows


def parse_document_list(list_xml: str, list_element: str) -> List[dict]:
    """Return the ``<list_element>`` items of a page payload as converted elements."""
    try:
        tree = parse_xml_tree(list_xml)
    except etree.XMLSyntaxError as e:
        raise SourceProtocolError("GetNextTransbyDate", f"malformed list XML: {e}") from e
    root = next(iter(tree.values()))
    if not isinstance(root, dict):
        return []
    return [item for item in as_list(root.get(list_element)) if isinstance(item, dict)]


class DocumentFetcher:
    """Pulls the raw document list of one kind for one account."""

    def __init__(self, client: MagayaClient):
        self.client = client

    async def fetch(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        today: Optional[date] = None,
    ) -> List[Document]:
        """
        Fetch every document of a kind inside the lookback horizon.

        A window that fails is logged and skipped; documents collected before
        the failure are kept.

        Returns:
            Unique documents (by number), in discovery order
        """
        documents: Dict[str, Document] = {}
        for start_date, end_date in fetch_windows(
            descriptor.lookback_days, today or date.today()
        ):
            try:
                status = await self._fetch_window(
                    account, access_key, descriptor, start_date, end_date, documents
                )
            except (InfrastructureException, ExternalServiceException) as e:
                logger.error(
                    f"Window {start_date}..{end_date} for {descriptor.name} "
                    f"failed on account {account.name}: {e}"
                )
                status = "failed"
            record_fetch_window(descriptor.name, status)

        logger.info(
            f"Fetched {len(documents)} {descriptor.name} documents for account {account.name}"
        )
        return list(documents.values())

    async def _fetch_window(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        start_date: str,
        end_date: str,
        documents: Dict[str, Document],
    ) -> str:
        first = await self.client.first_page(
            account,
            access_key,
            descriptor.source_type,
            start_date,
            end_date,
            descriptor.query_function,
        )
        if not first.ok:
            logger.warning(
                f"Window {start_date}..{end_date} for {descriptor.name} skipped: {first.result}"
            )
            return "skipped"

        cookie = first.cookie
        more_results = first.more_results
        while more_results != NO_MORE_RESULTS and cookie:
            page = await self.client.next_page(account, cookie)
            if not page.trans_list_xml.strip():
                break

            for element in parse_document_list(page.trans_list_xml, descriptor.list_element):
                number = text_of(element.get("Number"))
                if not number:
                    logger.warning(f"List item without Number in window {start_date}")
                    continue
                if number in documents:
                    continue
                documents[number] = document_from_element(
                    descriptor, element, number=number
                )

            cookie = page.cookie
            more_results = page.more_results

        return "ok"
