"""
Eligibility classifier.

Loads the status custom fields of a listed document and decides, through the
kind's table-driven predicate, whether it needs emission, re-emission, or is
out of scope. A document that failed on a previous run (stored process state
still incomplete and source labels unchanged since) is re-admitted even though
its request label no longer asks for processing.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from envoice.exceptions import SourceProtocolError
from envoice.kinds.base import KindDescriptor
from envoice.models.account import Account
from envoice.models.document import Document
from envoice.models.source_responses import NO_ERROR
from envoice.services.document_mapper import document_from_element, parse_transaction
from envoice.services.reconciliation_store import ReconciliationStore
from envoice.services.source_client import CLASSIFY_FLAGS, MagayaClient

REENTRY_REASON = "stored state incomplete"


@dataclass(frozen=True)
class Classification:
    eligible: bool
    reason: str


class EligibilityClassifier:
    def __init__(self, client: MagayaClient, store: Optional[ReconciliationStore] = None):
        self.client = client
        self.store = store

    async def load(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
        flags: str = CLASSIFY_FLAGS,
    ) -> Document:
        """
        Fetch the full transaction and return the document with its custom fields.

        Raises:
            SourceProtocolError: If the ERP reports an error or an empty transaction
        """
        response = await self.client.get_transaction(
            account, access_key, descriptor.source_type, document.id, flags=flags
        )
        if response.result != NO_ERROR or not response.trans_xml.strip():
            raise SourceProtocolError(
                "GetTransaction",
                f"document {document.id} not returned ({response.result or 'empty'})",
            )
        element = parse_transaction("GetTransaction", response.trans_xml)
        return document_from_element(
            descriptor, element, number=document.id, global_id=document.global_id
        )

    def classify(
        self, account_id: str, descriptor: KindDescriptor, document: Document
    ) -> Classification:
        eligible, reason = descriptor.is_eligible(document)
        if not eligible and self._reenters(account_id, descriptor, document):
            eligible, reason = True, REENTRY_REASON

        logger.debug(
            f"{descriptor.name} {document.id}: "
            f"{'eligible' if eligible else 'not eligible'} ({reason})"
        )
        return Classification(eligible, reason)

    def _reenters(
        self, account_id: str, descriptor: KindDescriptor, document: Document
    ) -> bool:
        if self.store is None or not descriptor.tracks_state:
            return False
        record = self.store.find(document.id)
        if record is None:
            return False
        return (
            record.kind == descriptor.record_kind.value
            and record.account_id == account_id
            and record.process_state in descriptor.incomplete_states
            and record.process_state == document.process_state
            and record.request_state == document.request_state
        )
