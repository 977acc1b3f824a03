"""
Exceptions raised while talking to the Magaya ERP and the LaFactura.co signing service.
"""

import requests

from envoice.exceptions.base_exceptions import (
    ExceptionCode,
    ExternalServiceException,
)
from envoice.exceptions.infrastructure_exceptions import InfrastructureException


def transport_code(original_exception: Exception = None) -> ExceptionCode:
    """TIMEOUT_ERROR when the call timed out, NETWORK_ERROR otherwise."""
    if isinstance(original_exception, requests.Timeout):
        return ExceptionCode.TIMEOUT_ERROR
    return ExceptionCode.NETWORK_ERROR


class SourceTransportError(InfrastructureException):
    """Raised when a SOAP call to the ERP fails at the network level."""

    def __init__(self, operation: str, original_exception: Exception = None):
        self.operation = operation
        super().__init__(
            message=f"Transport failure calling ERP operation {operation}",
            error_type="source_transport",
            details={"operation": operation},
            original_exception=original_exception,
            code=transport_code(original_exception),
        )


class SigningTransportError(InfrastructureException):
    """Raised when a REST call to the signing service fails at the network level."""

    def __init__(self, endpoint: str, original_exception: Exception = None):
        self.endpoint = endpoint
        super().__init__(
            message=f"Transport failure calling signing endpoint {endpoint}",
            error_type="signing_transport",
            details={"endpoint": endpoint},
            original_exception=original_exception,
            code=transport_code(original_exception),
        )


class SourceProtocolError(ExternalServiceException):
    """Raised when an ERP response lacks an expected node or carries an error code."""

    def __init__(self, operation: str, message: str, details: dict = None):
        self.operation = operation
        exception_details = details or {}
        exception_details["operation"] = operation
        super().__init__(
            message=f"{operation}: {message}",
            code=ExceptionCode.EXTERNAL_PROTOCOL_ERROR,
            details=exception_details,
        )


class SigningProtocolError(ExternalServiceException):
    """Raised when a signing-service response cannot be interpreted."""

    def __init__(self, endpoint: str, message: str, details: dict = None):
        self.endpoint = endpoint
        exception_details = details or {}
        exception_details["endpoint"] = endpoint
        super().__init__(
            message=f"{endpoint}: {message}",
            code=ExceptionCode.EXTERNAL_PROTOCOL_ERROR,
            details=exception_details,
        )


class AuthenticationError(ExternalServiceException):
    """Raised when the ERP denies a session or returns an empty access key."""

    def __init__(self, account: str, reason: str):
        self.account = account
        super().__init__(
            message=f"Session refused for account {account}: {reason}",
            code=ExceptionCode.EXTERNAL_AUTH_FAILED,
            details={"account": account, "reason": reason},
        )


class FieldUpdateError(ExternalServiceException):
    """Raised when a custom field write-back to the ERP fails."""

    def __init__(
        self,
        document_id: str,
        field_name: str,
        original_exception: Exception = None,
    ):
        self.document_id = document_id
        self.field_name = field_name
        super().__init__(
            message=f"Could not update field {field_name} on document {document_id}",
            code=ExceptionCode.EXTERNAL_API_ERROR,
            details={"document_id": document_id, "field": field_name},
            original_exception=original_exception,
        )


class AttachmentError(ExternalServiceException):
    """Raised when the signed artifact cannot be downloaded or attached."""

    def __init__(self, document_id: str, original_exception: Exception = None):
        self.document_id = document_id
        super().__init__(
            message=f"Could not attach signed artifact to document {document_id}",
            code=ExceptionCode.EXTERNAL_API_ERROR,
            details={"document_id": document_id},
            original_exception=original_exception,
        )
