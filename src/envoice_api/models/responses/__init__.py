"""
Response models module - organized by responsibility.
"""

from envoice_api.models.responses.error_responses import ErrorResponse
from envoice_api.models.responses.sync_responses import (
    PendingRecord,
    PendingRecordsResponse,
)
from envoice_api.models.responses.system_responses import (
    HealthCheckResponse,
    StatusResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthCheckResponse",
    "StatusResponse",
    "PendingRecord",
    "PendingRecordsResponse",
]
