"""
API models module.
"""

from envoice_api.models.responses import (
    ErrorResponse,
    HealthCheckResponse,
    PendingRecord,
    PendingRecordsResponse,
    StatusResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthCheckResponse",
    "StatusResponse",
    "PendingRecord",
    "PendingRecordsResponse",
]
