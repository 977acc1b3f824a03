"""
Observability module for the envoice sync service.
Provides metrics capabilities.
"""

from envoice.observability.metrics import (
    end_run_timer,
    get_metrics_endpoint,
    metrics_registry,
    record_document_outcome,
    record_fetch_window,
    record_field_write,
    record_http_request,
    record_poll_result,
    record_reconciliation,
    record_session_acquisition,
    record_sync_run,
    start_run_timer,
)

__all__ = [
    # Metrics
    "metrics_registry",
    "record_document_outcome",
    "record_fetch_window",
    "record_poll_result",
    "record_field_write",
    "record_session_acquisition",
    "record_reconciliation",
    "record_sync_run",
    "record_http_request",
    "start_run_timer",
    "end_run_timer",
    "get_metrics_endpoint",
]
