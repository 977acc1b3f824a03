"""
Prometheus metrics for the envoice sync service.
Focus on business metrics and Golden Signals.
"""

import time
from typing import Dict

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a custom registry for our metrics
metrics_registry = CollectorRegistry()

# ====== BUSINESS METRICS ======

# Submission outcomes per document
documents_processed_total = Counter(
    "documents_processed_total",
    "Documents run through the submission engine",
    ["kind", "status"],  # invoice, credit_note, cancellation + outcome status
    registry=metrics_registry,
)

# Fetch windows
fetch_windows_total = Counter(
    "fetch_windows_total",
    "Date windows queried against the ERP",
    ["kind", "status"],  # ok, skipped, failed
    registry=metrics_registry,
)

# Status polls
status_polls_total = Counter(
    "status_polls_total",
    "Status poll sequences by result",
    ["kind", "result"],  # confirmed, rejected, timeout
    registry=metrics_registry,
)

# Custom field write-backs
field_writes_total = Counter(
    "field_writes_total",
    "Custom field writes to the ERP",
    ["status"],  # success, failed
    registry=metrics_registry,
)

# Session acquisition
session_acquisitions_total = Counter(
    "session_acquisitions_total",
    "ERP session acquisitions",
    ["status"],  # success, failed, cached
    registry=metrics_registry,
)

# Reconciliation store writes
reconciliation_writes_total = Counter(
    "reconciliation_writes_total",
    "Reconciliation store results",
    ["result"],  # inserted, updated, unchanged, invalid
    registry=metrics_registry,
)

# Sync runs
sync_runs_total = Counter(
    "sync_runs_total",
    "Sync runs by result",
    ["status"],  # completed, aborted
    registry=metrics_registry,
)

# ====== GOLDEN SIGNALS ======

# 1. TRAFFIC - Request rate
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=metrics_registry,
)

# 2. LATENCY - Response time distribution
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)

sync_run_duration_seconds = Histogram(
    "sync_run_duration_seconds",
    "Sync run duration",
    buckets=[10, 30, 60, 120, 300, 600, 1800],
    registry=metrics_registry,
)

# 3. ERRORS - Error rate by HTTP status class
http_requests_2xx_total = Counter(
    "http_requests_2xx_total",
    "Total 2xx HTTP responses",
    ["method", "endpoint"],
    registry=metrics_registry,
)

http_requests_4xx_total = Counter(
    "http_requests_4xx_total",
    "Total 4xx HTTP responses",
    ["method", "endpoint"],
    registry=metrics_registry,
)

http_requests_5xx_total = Counter(
    "http_requests_5xx_total",
    "Total 5xx HTTP responses",
    ["method", "endpoint"],
    registry=metrics_registry,
)

# 4. SATURATION - Resource utilization
active_runs_gauge = Gauge(
    "active_sync_runs_current",
    "Number of sync runs in flight",
    registry=metrics_registry,
)

# Run timing trackers
_run_start_times: Dict[str, float] = {}

# ====== BUSINESS METRIC FUNCTIONS ======


def record_document_outcome(kind: str, status: str) -> None:
    """Record the submission outcome of one document."""
    documents_processed_total.labels(kind=kind, status=status).inc()


def record_fetch_window(kind: str, status: str) -> None:
    fetch_windows_total.labels(kind=kind, status=status).inc()


def record_poll_result(kind: str, result: str) -> None:
    status_polls_total.labels(kind=kind, result=result).inc()


def record_field_write(status: str) -> None:
    field_writes_total.labels(status=status).inc()


def record_session_acquisition(status: str) -> None:
    session_acquisitions_total.labels(status=status).inc()


def record_reconciliation(result: str) -> None:
    """Record a reconciliation store result (inserted, updated, unchanged, invalid)."""
    reconciliation_writes_total.labels(result=result).inc()


def record_sync_run(status: str) -> None:
    sync_runs_total.labels(status=status).inc()


# ====== GOLDEN SIGNALS FUNCTIONS ======


def record_http_request(
    method: str, endpoint: str, status_code: int, duration: float
) -> None:
    """Record HTTP request metrics with golden signals."""
    # Traffic
    http_requests_total.labels(
        method=method, endpoint=endpoint, status_code=str(status_code)
    ).inc()

    # Latency
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration
    )

    # Errors by status code class
    if 200 <= status_code < 300:
        http_requests_2xx_total.labels(method=method, endpoint=endpoint).inc()
    elif 400 <= status_code < 500:
        http_requests_4xx_total.labels(method=method, endpoint=endpoint).inc()
    elif 500 <= status_code < 600:
        http_requests_5xx_total.labels(method=method, endpoint=endpoint).inc()


def start_run_timer(run_id: str) -> None:
    """Start timing a sync run."""
    _run_start_times[run_id] = time.time()
    active_runs_gauge.inc()


def end_run_timer(run_id: str) -> None:
    """End timing a sync run and record duration."""
    start_time = _run_start_times.pop(run_id, None)
    if start_time:
        sync_run_duration_seconds.observe(time.time() - start_time)

    active_runs_gauge.dec()


def get_metrics_endpoint() -> tuple[bytes, str]:
    """Get metrics for Prometheus scraping."""
    return generate_latest(metrics_registry), CONTENT_TYPE_LATEST
