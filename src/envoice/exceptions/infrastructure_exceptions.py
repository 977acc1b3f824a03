"""
Infrastructure-specific exceptions for the envoice sync service.
"""

from envoice.exceptions.base_exceptions import BaseException, ExceptionCode


class InfrastructureException(BaseException):
    """Raised when there's an infrastructure failure that should be retried."""

    def __init__(
        self,
        message: str = "Infrastructure failure - service unavailable or overloaded",
        error_type: str = None,
        details: dict = None,
        original_exception: Exception = None,
        code: ExceptionCode = ExceptionCode.SERVICE_UNAVAILABLE,
    ):
        exception_details = details or {}
        exception_details["error_type"] = error_type
        super().__init__(
            message=message,
            code=code,
            details=exception_details,
            original_exception=original_exception,
        )


class DatabaseConnectionError(BaseException):
    """Raised when the reconciliation database cannot be reached at start-up."""

    def __init__(
        self,
        message: str = "Could not connect to the reconciliation database",
        database_url: str = None,
        original_exception: Exception = None,
    ):
        super().__init__(
            message=message,
            code=ExceptionCode.DATABASE_CONNECTION_ERROR,
            details={"database_url": database_url},
            original_exception=original_exception,
        )
