"""
Data models: documents, accounts, wire schemas and ORM records.
"""

from envoice.models.account import Account
from envoice.models.document import Document, DocumentKind
from envoice.models.records import AccountRecord, ReconciliationRecord
from envoice.models.reconciliation import RecordState
from envoice.models.run import AccountSummary, KindSummary, RunSummary
from envoice.models.signing_responses import (
    PROCESS_CONFIRMED,
    PROCESS_PENDING,
    PROCESS_REJECTED,
    RangesResult,
    StatusResult,
    SubmitResult,
)
from envoice.models.source_responses import (
    AckResponse,
    FirstPageResponse,
    NextPageResponse,
    SessionResponse,
    TransactionResponse,
)

__all__ = [
    "Account",
    "Document",
    "DocumentKind",
    "AccountRecord",
    "ReconciliationRecord",
    "RecordState",
    "RunSummary",
    "AccountSummary",
    "KindSummary",
    "SubmitResult",
    "StatusResult",
    "RangesResult",
    "PROCESS_PENDING",
    "PROCESS_REJECTED",
    "PROCESS_CONFIRMED",
    "SessionResponse",
    "FirstPageResponse",
    "NextPageResponse",
    "TransactionResponse",
    "AckResponse",
]
