"""
Sync trigger and pending-record response models.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PendingRecord(BaseModel):
    """Stored record whose process state is still incomplete."""

    id: str = Field(..., description="Document number")
    kind: str = Field(..., description="Record kind")
    account_id: str = Field(..., description="Magaya network id")
    global_id: str = Field(..., description="ERP GUID")
    request_state: Optional[str] = Field(None, description="Request label")
    process_state: str = Field(..., description="Process label")
    external_code: Optional[str] = Field(None, description="Signing-service code")
    updated_at: Optional[datetime] = Field(None, description="Last change")


class PendingRecordsResponse(BaseModel):
    records: List[PendingRecord] = Field(default_factory=list)
    count: int = Field(..., description="Number of records")

    class Config:
        json_schema_extra = {
            "example": {
                "records": [
                    {
                        "id": "101",
                        "kind": "invoice",
                        "account_id": "12345",
                        "global_id": "3f2a6c1e-8d4b-4a57-9f0e-0b7f2d9c1a11",
                        "request_state": "Pendiente",
                        "process_state": "Error en Factura Electronica",
                        "external_code": None,
                        "updated_at": "2025-01-15T10:30:00",
                    }
                ],
                "count": 1,
            }
        }
