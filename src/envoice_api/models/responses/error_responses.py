"""
Error response models.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error details"
    )
    timestamp: datetime = Field(default_factory=datetime.now)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "SyncAlreadyRunning",
                "message": "Sync run already in progress",
                "details": {"run_id": "4b7c1f0e-2a1d-4f35-9e3b-7d0a9c2e5f11"},
                "timestamp": "2025-01-15T10:30:00",
            }
        }
