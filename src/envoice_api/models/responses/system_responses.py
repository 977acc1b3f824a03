"""
System health and status response models.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from envoice.models.run import RunSummary


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    status: str = Field("healthy", description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    version: str = Field("1.0.0", description="API version")
    services: Dict[str, str] = Field(
        default_factory=dict, description="Status of dependent services"
    )


class StatusResponse(BaseModel):
    """Scheduler state, last run and stored record counts."""

    scheduler_running: bool = Field(..., description="Periodic trigger active")
    interval_seconds: float = Field(..., description="Seconds between ticks")
    last_tick: Optional[datetime] = Field(None, description="Last scheduler tick")
    skipped_ticks: int = Field(0, description="Ticks skipped because a run was in flight")
    sync_running: bool = Field(..., description="A run is in flight")
    current_run_id: Optional[str] = Field(None, description="Id of the run in flight")
    last_run: Optional[RunSummary] = Field(None, description="Summary of the last run")
    records: Dict[str, Dict[str, int]] = Field(
        default_factory=dict, description="Stored records by kind and process state"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "scheduler_running": True,
                "interval_seconds": 300,
                "last_tick": "2025-01-15T10:30:00",
                "skipped_ticks": 0,
                "sync_running": False,
                "current_run_id": None,
                "last_run": None,
                "records": {"invoice": {"Factura Electronica Exitosa": 12}},
            }
        }
