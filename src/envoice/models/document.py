"""
Document model - one invoice, credit note or cancellation pulled from the ERP.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class DocumentKind(str, Enum):
    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    CANCELLATION = "cancellation"


class Document(BaseModel):
    """A billing document mirrored from the ERP, enriched as it moves through the pipeline."""

    id: str = Field(..., description="ERP transaction number")
    kind: DocumentKind = Field(..., description="Document kind")
    global_id: Optional[str] = Field(None, description="ERP GUID")
    request_state: Optional[str] = Field(None, description="Request status label")
    process_state: Optional[str] = Field(None, description="Process status label")
    external_code: Optional[str] = Field(
        None, description="Code assigned by the signing service on acceptance"
    )
    fiscal_reference: Optional[str] = Field(
        None, description="CUFE/CUDE assigned by the signing service"
    )
    notes: Optional[str] = Field(None, description="Free-text notes of the transaction")
    custom_fields: Dict[str, str] = Field(
        default_factory=dict, description="Custom field values by internal name"
    )
    raw: Dict[str, Any] = Field(
        default_factory=dict, description="Parsed transaction element"
    )

    def field(self, internal_name: str) -> Optional[str]:
        """Return a custom field value, or None when absent or blank."""
        value = self.custom_fields.get(internal_name)
        if value is None or not str(value).strip():
            return None
        return value
