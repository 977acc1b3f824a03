"""
Exception module for the envoice sync service.
Contains custom exceptions for different error types.
"""

from envoice.exceptions.base_exceptions import BaseException as BaseEnvoiceException
from envoice.exceptions.base_exceptions import (
    BusinessException,
    ExceptionCode,
    ExternalServiceException,
    WorkflowException,
)
from envoice.exceptions.infrastructure_exceptions import (
    DatabaseConnectionError,
    InfrastructureException,
)
from envoice.exceptions.integration_exceptions import (
    AttachmentError,
    AuthenticationError,
    FieldUpdateError,
    SigningProtocolError,
    SigningTransportError,
    SourceProtocolError,
    SourceTransportError,
)
from envoice.exceptions.pipeline_exceptions import (
    DocumentValidationError,
    InvalidRecordError,
    PollTimeoutError,
    RetryExhaustedError,
    SessionUnavailableError,
    SyncAlreadyRunningError,
)

__all__ = [
    "BaseEnvoiceException",
    "InfrastructureException",
    "WorkflowException",
    "BusinessException",
    "ExternalServiceException",
    "ExceptionCode",
    "DatabaseConnectionError",
    "SourceTransportError",
    "SigningTransportError",
    "SourceProtocolError",
    "SigningProtocolError",
    "AuthenticationError",
    "FieldUpdateError",
    "AttachmentError",
    "DocumentValidationError",
    "InvalidRecordError",
    "PollTimeoutError",
    "RetryExhaustedError",
    "SessionUnavailableError",
    "SyncAlreadyRunningError",
]
