"""
Exceptions raised by the sync pipeline itself.
"""

from typing import List, Optional

from envoice.exceptions.base_exceptions import (
    BusinessException,
    ExceptionCode,
    WorkflowException,
)


class DocumentValidationError(BusinessException):
    """Raised when a document lacks the fields needed to build its payload."""

    def __init__(self, document_id: str, missing: List[str]):
        self.document_id = document_id
        self.missing = list(missing)
        super().__init__(
            message=(
                f"Document {document_id} is missing required fields: "
                f"{', '.join(self.missing)}"
            ),
            code=ExceptionCode.VALIDATION_ERROR,
            details={"document_id": document_id, "missing": self.missing},
        )


class InvalidRecordError(BusinessException):
    """Raised when a reconciliation record fails validation before a write."""

    def __init__(self, record_id: Optional[str], reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(
            message=f"Invalid reconciliation record {record_id or '<no id>'}: {reason}",
            code=ExceptionCode.VALIDATION_ERROR,
            details={"record_id": record_id, "reason": reason},
        )


class PollTimeoutError(WorkflowException):
    """Raised when the status poll ends without a terminal process value."""

    def __init__(self, document_id: str, attempts: int, last_process: Optional[int]):
        self.document_id = document_id
        self.attempts = attempts
        self.last_process = last_process
        super().__init__(
            message=(
                f"Status of document {document_id} still pending after "
                f"{attempts} attempts"
            ),
            code=ExceptionCode.WORKFLOW_TIMEOUT,
            details={
                "document_id": document_id,
                "attempts": attempts,
                "last_process": last_process,
            },
        )


class RetryExhaustedError(WorkflowException):
    """Raised when a retried operation keeps failing until the policy gives up."""

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            message=f"{operation} failed after {attempts} attempts: {last_error}",
            code=ExceptionCode.RETRIES_EXHAUSTED,
            details={"operation": operation, "attempts": attempts},
            original_exception=last_error,
        )


class SessionUnavailableError(WorkflowException):
    """Raised when another worker is already opening the account's ERP session."""

    def __init__(self, account: str):
        self.account = account
        super().__init__(
            message=f"Session for account {account} is being acquired elsewhere",
            code=ExceptionCode.INVALID_STATE,
            details={"account": account},
        )


class SyncAlreadyRunningError(WorkflowException):
    """Raised when a sync pass is requested while another one is in flight."""

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id
        super().__init__(
            message="Sync run already in progress"
            + (f" ({run_id})" if run_id else ""),
            code=ExceptionCode.INVALID_STATE,
            details={"run_id": run_id},
        )
