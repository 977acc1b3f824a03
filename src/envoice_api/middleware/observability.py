"""
FastAPI middleware for automatic observability.
Captures HTTP metrics and tags logs with a run id.
"""

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from envoice.logging import clear_run_id, set_run_id
from envoice.observability import get_metrics_endpoint, record_http_request


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Middleware to automatically capture HTTP metrics and logs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate or extract run_id for tracing
        run_id = request.headers.get("X-Run-ID", str(uuid.uuid4()))
        request.state.run_id = run_id

        start_time = time.time()
        method = request.method
        url_path = request.url.path

        set_run_id(run_id)
        try:
            response = await call_next(request)
        finally:
            clear_run_id()

        record_http_request(
            method=method,
            endpoint=url_path,
            status_code=response.status_code,
            duration=time.time() - start_time,
        )

        # Echo run_id for traceability
        response.headers["X-Run-ID"] = run_id

        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Add observability middleware to FastAPI app."""
    app.add_middleware(ObservabilityMiddleware)


def add_metrics_endpoint(app: FastAPI) -> None:
    """Add metrics endpoint for Prometheus scraping."""

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        content, content_type = get_metrics_endpoint()
        return Response(content=content, media_type=content_type)
