"""
Base exception classes for the envoice sync service.
"""

from enum import Enum
from typing import Optional


class ExceptionCode(Enum):
    """Enumeration of all possible exception codes."""

    # Infrastructure errors (INFRA_XXXX)
    SERVICE_UNAVAILABLE = "INFRA_1003"
    TIMEOUT_ERROR = "INFRA_1005"
    DATABASE_CONNECTION_ERROR = "INFRA_1008"
    NETWORK_ERROR = "INFRA_1009"

    # Business rule errors (BIZ_XXXX)
    VALIDATION_ERROR = "BIZ_2003"
    INVALID_STATE = "BIZ_2007"

    # Workflow errors (WF_XXXX)
    WORKFLOW_TIMEOUT = "WF_3003"
    RETRIES_EXHAUSTED = "WF_3006"

    # External service errors (EXT_XXXX)
    EXTERNAL_API_ERROR = "EXT_5001"
    EXTERNAL_AUTH_FAILED = "EXT_5004"
    EXTERNAL_PROTOCOL_ERROR = "EXT_5006"


class BaseException(Exception):
    """Base exception for the envoice sync service."""

    def __init__(
        self,
        message: str,
        code: ExceptionCode,
        details: Optional[dict] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code.value
        self.details = details or {}
        self.original_exception = original_exception

    def __str__(self):
        return f"[{self.code}] {self.message}"

    def to_dict(self):
        """Convert exception to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "original_exception_type": (
                type(self.original_exception).__name__
                if self.original_exception
                else None
            ),
        }


class WorkflowException(BaseException):
    """Base exception for pipeline step errors."""

    pass


class BusinessException(BaseException):
    """Base exception for business rule violations."""

    pass


class ExternalServiceException(BaseException):
    """Base exception for errors reported by the ERP or the signing service."""

    pass
