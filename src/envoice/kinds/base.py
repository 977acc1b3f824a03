"""
Per-kind descriptor consumed by the generic fetch/classify/submit/poll pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple

from envoice.models.document import Document, DocumentKind
from envoice.models.signing_responses import SubmitResult
from envoice.services.retry_service import RetryPolicy

PayloadBuilder = Callable[[Document, str], Dict[str, Any]]
EligibilityPredicate = Callable[["KindDescriptor", Document], Tuple[bool, str]]


@dataclass(frozen=True)
class StatusFields:
    """Internal names of the ERP custom fields carrying workflow state."""

    request: str
    process: str
    message: str
    external_code: str
    fiscal_reference: Optional[str] = None
    # Field set to the in-progress label before submitting
    in_progress: Optional[str] = None


@dataclass(frozen=True)
class StatusVocabulary:
    """Labels written to and read from the status fields."""

    please_process: Optional[str]
    not_issued: Optional[str]
    error: str
    issued: str
    in_progress: str
    # Request label written on acceptance / rejection
    success_request: str
    failure_request: str = "Pendiente"
    cancelled: Optional[str] = None


@dataclass
class KindDescriptor:
    """Everything the pipeline needs to handle one document kind."""

    kind: DocumentKind
    list_element: str
    query_function: str
    lookback_days: int
    endpoint: str
    fields: StatusFields
    vocabulary: StatusVocabulary
    poll_policy: RetryPolicy
    build_payload: PayloadBuilder
    predicate: EligibilityPredicate
    source_type: str = "IN"
    record_kind: Optional[DocumentKind] = None
    range_type: Optional[str] = None
    # Whether the fetched state is reconciled against the store before submitting
    tracks_state: bool = True
    attach_on_confirm: bool = True
    # When False the store is written only once the poll confirms
    persist_before_confirm: bool = True
    allowed_states: FrozenSet[str] = field(default_factory=frozenset)
    incomplete_states: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.record_kind is None:
            self.record_kind = self.kind

    @property
    def name(self) -> str:
        return self.kind.value

    def is_eligible(self, document: Document) -> Tuple[bool, str]:
        return self.predicate(self, document)

    def in_progress_updates(self) -> Dict[str, str]:
        target = self.fields.in_progress or self.fields.process
        return {target: self.vocabulary.in_progress}

    def outcome_updates(self, result: SubmitResult) -> Dict[str, str]:
        """Custom field writes reflecting a submit response."""
        updates = {self.fields.message: result.status_text}
        if result.accepted:
            updates[self.fields.process] = self.vocabulary.issued
            updates[self.fields.request] = self.vocabulary.success_request
            if result.external_code:
                updates[self.fields.external_code] = result.external_code
            if self.fields.fiscal_reference and result.fiscal_reference:
                updates[self.fields.fiscal_reference] = result.fiscal_reference
        else:
            updates[self.fields.process] = self.vocabulary.error
            updates[self.fields.request] = self.vocabulary.failure_request
        return updates

    def failure_updates(self, message: str) -> Dict[str, str]:
        """Custom field writes for a document that could not be submitted."""
        return {
            self.fields.message: message,
            self.fields.process: self.vocabulary.error,
            self.fields.request: self.vocabulary.failure_request,
        }

    def record_states(self, accepted: bool) -> Tuple[str, str]:
        """(request_state, process_state) stored after a submit."""
        if accepted:
            return self.vocabulary.success_request, self.vocabulary.issued
        return self.vocabulary.failure_request, self.vocabulary.error


def request_predicate(descriptor: KindDescriptor, document: Document) -> Tuple[bool, str]:
    """Eligible iff the request label asks for processing and the process label allows it."""
    vocabulary = descriptor.vocabulary
    if document.request_state != vocabulary.please_process:
        return False, f"request state is {document.request_state!r}"
    if document.process_state not in descriptor.incomplete_states:
        return False, f"process state is {document.process_state!r}"
    if document.process_state == vocabulary.error:
        return True, "previous error"
    return True, "not yet processed"
