"""
Health and status controller.
"""

from fastapi import APIRouter, Request

from envoice_api.models.responses import HealthCheckResponse, StatusResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Simple liveness check",
)
def health_check():
    """Simple health check endpoint."""
    return HealthCheckResponse(services={"api": "healthy"})


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Sync status",
    description="Scheduler state, last run summary and stored record counts. Requires X-API-Token header.",
)
def sync_status(request: Request):
    """Report scheduler and orchestrator state."""
    scheduler = request.app.state.scheduler
    orchestrator = request.app.state.orchestrator
    return StatusResponse(
        scheduler_running=scheduler.running,
        interval_seconds=scheduler.interval,
        last_tick=scheduler.last_tick,
        skipped_ticks=scheduler.skipped_ticks,
        sync_running=orchestrator.is_running,
        current_run_id=orchestrator.current_run_id,
        last_run=orchestrator.last_summary,
        records=orchestrator.store.count_by_state(),
    )
