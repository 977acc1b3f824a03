"""
Submission & status-poll engine.

Processes one document end to end behind the submission guard:

    mark in progress -> build payload -> submit -> write outcome (source + store)
    -> poll until terminal -> attach the signed artifact

Source field writes happen before any later step, so a failure while polling
or attaching leaves the ERP consistent with the last known signing state.
Business rejections are outcomes, not exceptions.
"""

import asyncio
import base64
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field

from envoice.exceptions import (
    AttachmentError,
    DocumentValidationError,
    ExternalServiceException,
    FieldUpdateError,
    InfrastructureException,
    InvalidRecordError,
    PollTimeoutError,
    RetryExhaustedError,
)
from envoice.kinds.base import KindDescriptor
from envoice.models.account import Account
from envoice.models.document import Document
from envoice.models.reconciliation import RecordState
from envoice.models.signing_responses import (
    PROCESS_CONFIRMED,
    PROCESS_PENDING,
    StatusResult,
    SubmitResult,
)
from envoice.models.source_responses import NO_ERROR
from envoice.observability import record_document_outcome, record_poll_result
from envoice.services.document_mapper import document_from_element, parse_transaction
from envoice.services.guard import GuardStore, SubmissionGuard
from envoice.services.propagator import FieldPropagator
from envoice.services.reconciliation_store import ReconciliationStore
from envoice.services.retry_service import retry_async
from envoice.services.signing_client import LaFacturaClient
from envoice.services.source_client import (
    PAYLOAD_FLAGS,
    MagayaClient,
    build_attachment_xml,
)

ARTIFACT_EXTENSION = "zip"

_external_errors = (InfrastructureException, ExternalServiceException)


def _poll_error(error: Exception) -> bool:
    # Any failed poll call only means "not known yet"
    return isinstance(error, _external_errors)


class OutcomeStatus(str, Enum):
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    REJECTED = "rejected"
    TIMEOUT = "timeout"
    INVALID = "invalid"
    ERROR = "error"
    SKIPPED = "skipped"
    ATTACH_FAILED = "attach_failed"


class SubmissionOutcome(BaseModel):
    """Result of processing one document."""

    document_id: str = Field(..., description="Document number")
    kind: str = Field(..., description="Document kind")
    status: OutcomeStatus = Field(..., description="Outcome")
    message: str = Field("", description="Signing-service or error message")
    external_code: Optional[str] = Field(None, description="Code assigned on acceptance")
    fiscal_reference: Optional[str] = Field(None, description="CUFE / CUDE")
    process: Optional[int] = Field(None, description="Last finalisation state seen")


class SubmissionEngine:
    """Generic per-document pipeline driven by a kind descriptor."""

    def __init__(
        self,
        source: MagayaClient,
        signing: LaFacturaClient,
        propagator: FieldPropagator,
        store: ReconciliationStore,
        guard_store: GuardStore,
        guard_ttl: int = 300,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.source = source
        self.signing = signing
        self.propagator = propagator
        self.store = store
        self.guard_store = guard_store
        self.guard_ttl = guard_ttl
        self._sleep = sleep
        self._guards: Dict[str, SubmissionGuard] = {}

    def guard_for(self, descriptor: KindDescriptor) -> SubmissionGuard:
        scope = descriptor.record_kind.value
        guard = self._guards.get(scope)
        if guard is None:
            guard = SubmissionGuard(self.guard_store, scope, self.guard_ttl)
            self._guards[scope] = guard
        return guard

    async def resolve_prefix(self, account: Account, descriptor: KindDescriptor) -> str:
        """Active numbering prefix for the kind, or "" when the kind uses none."""
        if not descriptor.range_type:
            return ""
        return await self.signing.get_prefix(account, descriptor.range_type)

    async def process(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
        prefix: str = "",
    ) -> SubmissionOutcome:
        """
        Run one document through submission and polling.

        Args:
            account: Owning account
            access_key: ERP session shared by the account's run
            descriptor: Kind of the document
            document: Eligible document
            prefix: Numbering prefix for the payload

        Returns:
            SubmissionOutcome; only unexpected errors propagate
        """
        async with self.guard_for(descriptor).hold(document.id) as acquired:
            if not acquired:
                outcome = self._outcome(
                    descriptor, document, OutcomeStatus.SKIPPED, "already being processed"
                )
            else:
                outcome = await self._process(
                    account, access_key, descriptor, document, prefix
                )

        record_document_outcome(descriptor.name, outcome.status.value)
        logger.info(
            f"{descriptor.name} {document.id} finished as {outcome.status.value}"
            + (f": {outcome.message}" if outcome.message else "")
        )
        return outcome

    async def _process(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
        prefix: str,
    ) -> SubmissionOutcome:
        logger.info(f"Processing {descriptor.name} {document.id}")

        try:
            await self.propagator.propagate_many(
                account, access_key, document.id, descriptor.in_progress_updates()
            )
        except FieldUpdateError as e:
            return self._outcome(descriptor, document, OutcomeStatus.ERROR, str(e))

        try:
            full = await self._load_for_payload(account, access_key, descriptor, document)
        except _external_errors as e:
            return await self._fail(
                account, access_key, descriptor, document, OutcomeStatus.ERROR, str(e)
            )

        try:
            payload = descriptor.build_payload(full, prefix)
        except (DocumentValidationError, ValueError) as e:
            # Store untouched: the record never reached the signing service
            return await self._fail(
                account,
                access_key,
                descriptor,
                document,
                OutcomeStatus.INVALID,
                str(e),
                persist=False,
            )

        try:
            result = await self.signing.submit(account, descriptor.endpoint, payload)
        except _external_errors as e:
            return await self._fail(
                account, access_key, descriptor, document, OutcomeStatus.ERROR, str(e)
            )

        if not result.accepted:
            return await self._fail(
                account,
                access_key,
                descriptor,
                document,
                OutcomeStatus.REJECTED,
                result.status_text,
                external_code=result.external_code,
            )

        return await self._accepted(account, access_key, descriptor, document, result)

    async def _load_for_payload(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
    ) -> Document:
        response = await self.source.get_transaction(
            account, access_key, descriptor.source_type, document.id, flags=PAYLOAD_FLAGS
        )
        if response.result != NO_ERROR or not response.trans_xml.strip():
            # Fall back to the tree loaded during classification
            logger.warning(
                f"Full transaction of {document.id} not returned ({response.result}); "
                "using classification data"
            )
            return document
        element = parse_transaction("GetTransaction", response.trans_xml)
        return document_from_element(
            descriptor, element, number=document.id, global_id=document.global_id
        )

    async def _accepted(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
        result: SubmitResult,
    ) -> SubmissionOutcome:
        document.external_code = result.external_code or document.external_code
        document.fiscal_reference = result.fiscal_reference or document.fiscal_reference
        request_state, process_state = descriptor.record_states(accepted=True)
        document.request_state = request_state
        document.process_state = process_state

        if descriptor.persist_before_confirm:
            self._persist(account, descriptor, document)

        try:
            await self.propagator.propagate_many(
                account, access_key, document.id, descriptor.outcome_updates(result)
            )
        except FieldUpdateError as e:
            return self._outcome(
                descriptor, document, OutcomeStatus.ERROR, f"accepted but {e}"
            )

        if result.process is not None and result.process != PROCESS_PENDING:
            status = StatusResult(process=result.process, url=result.url)
        elif not document.external_code:
            return self._outcome(
                descriptor,
                document,
                OutcomeStatus.ERROR,
                "accepted without an external code to poll",
            )
        else:
            try:
                status = await self.poll(account, descriptor, document)
            except PollTimeoutError as e:
                # Process state keeps whatever was written at submission
                return self._outcome(
                    descriptor,
                    document,
                    OutcomeStatus.TIMEOUT,
                    str(e),
                    process=e.last_process,
                )

        if status.process != PROCESS_CONFIRMED:
            record_poll_result(descriptor.name, "rejected")
            logger.warning(f"{descriptor.name} {document.id} was declined after acceptance")
            return self._outcome(
                descriptor,
                document,
                OutcomeStatus.DECLINED,
                result.status_text,
                process=status.process,
            )

        record_poll_result(descriptor.name, "confirmed")
        if not descriptor.persist_before_confirm:
            self._persist(account, descriptor, document)

        if descriptor.attach_on_confirm:
            try:
                await self.attach(account, access_key, descriptor, document, status.url)
            except AttachmentError as e:
                logger.error(str(e))
                return self._outcome(
                    descriptor,
                    document,
                    OutcomeStatus.ATTACH_FAILED,
                    str(e),
                    process=status.process,
                )

        return self._outcome(
            descriptor,
            document,
            OutcomeStatus.CONFIRMED,
            result.status_text,
            process=status.process,
        )

    async def poll(
        self, account: Account, descriptor: KindDescriptor, document: Document
    ) -> StatusResult:
        """
        Poll the status endpoint with the kind's policy until a terminal process value.

        Raises:
            PollTimeoutError: If every attempt is still pending or failed
        """
        policy = descriptor.poll_policy
        try:
            status = await retry_async(
                lambda: self.signing.verify_status(account, document.external_code),
                policy,
                retry_on=_poll_error,
                accept=lambda s: s.terminal,
                sleep=self._sleep,
                description=f"verifyStatus[{document.id}]",
            )
        except RetryExhaustedError:
            status = None

        if status is None or not status.terminal:
            record_poll_result(descriptor.name, "timeout")
            raise PollTimeoutError(
                document.id,
                policy.max_attempts,
                status.process if status is not None else None,
            )
        return status

    async def attach(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
        url: Optional[str],
    ) -> None:
        """
        Download the signed artifact and attach it to the ERP document.

        Raises:
            AttachmentError: If there is no URL, the download fails or the ERP refuses it
        """
        if not url:
            raise AttachmentError(document.id)
        try:
            content = await self.signing.download(url)
            attachment = build_attachment_xml(
                f"factura_{document.id}",
                ARTIFACT_EXTENSION,
                base64.b64encode(content).decode("ascii"),
            )
            ack = await self.source.set_attachment(
                account, access_key, descriptor.source_type, document.id, attachment
            )
        except _external_errors as e:
            raise AttachmentError(document.id, original_exception=e) from e
        if not ack.ok:
            raise AttachmentError(document.id)
        logger.info(f"Signed artifact attached to {document.id}")

    async def _fail(
        self,
        account: Account,
        access_key: str,
        descriptor: KindDescriptor,
        document: Document,
        status: OutcomeStatus,
        message: str,
        persist: bool = True,
        external_code: Optional[str] = None,
    ) -> SubmissionOutcome:
        """Write failure labels to the source and, when the kind tracks it, to the store."""
        try:
            await self.propagator.propagate_many(
                account, access_key, document.id, descriptor.failure_updates(message)
            )
        except FieldUpdateError as e:
            logger.error(f"Failure labels not written to {document.id}: {e}")

        if persist and descriptor.persist_before_confirm:
            request_state, process_state = descriptor.record_states(accepted=False)
            document.request_state = request_state
            document.process_state = process_state
            self._persist(account, descriptor, document)

        outcome = self._outcome(descriptor, document, status, message)
        outcome.external_code = external_code or outcome.external_code
        return outcome

    def _persist(self, account: Account, descriptor: KindDescriptor, document: Document) -> None:
        record = RecordState.from_document(
            document, account.network_id, descriptor.record_kind.value
        )
        if not descriptor.persist_before_confirm:
            # Cancellation confirmed: the invoice record itself becomes cancelled
            record.request_state = descriptor.vocabulary.success_request
            record.process_state = descriptor.vocabulary.cancelled or descriptor.vocabulary.issued
            record.external_code = None
            record.fiscal_reference = None
        try:
            self.store.record_outcome(record)
        except InvalidRecordError as e:
            logger.error(f"Outcome of {document.id} not stored: {e}")

    def _outcome(
        self,
        descriptor: KindDescriptor,
        document: Document,
        status: OutcomeStatus,
        message: str = "",
        process: Optional[int] = None,
    ) -> SubmissionOutcome:
        return SubmissionOutcome(
            document_id=document.id,
            kind=descriptor.name,
            status=status,
            message=message or "",
            external_code=document.external_code,
            fiscal_reference=document.fiscal_reference,
            process=process,
        )
