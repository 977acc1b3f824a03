"""
Incoming state of one document as offered to the reconciliation store.
"""

from typing import Optional

from pydantic import BaseModel, Field

from envoice.models.document import Document


class RecordState(BaseModel):
    """Unvalidated record; the store checks it before any write."""

    id: Optional[str] = Field(None, description="Document number")
    kind: Optional[str] = Field(None, description="Record kind")
    account_id: Optional[str] = Field(None, description="Owning account network id")
    global_id: Optional[str] = Field(None, description="ERP GUID")
    request_state: Optional[str] = None
    process_state: Optional[str] = None
    external_code: Optional[str] = None
    fiscal_reference: Optional[str] = None

    @classmethod
    def from_document(
        cls, document: Document, account_id: str, record_kind: str
    ) -> "RecordState":
        return cls(
            id=document.id,
            kind=record_kind,
            account_id=account_id,
            global_id=document.global_id,
            request_state=document.request_state,
            process_state=document.process_state,
            external_code=document.external_code,
            fiscal_reference=document.fiscal_reference,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "id": "101",
                "kind": "invoice",
                "account_id": "12345",
                "global_id": "3f2a6c1e-8d4b-4a57-9f0e-0b7f2d9c1a11",
                "request_state": "Emitir Factura Electronica",
                "process_state": "Sin Factura Electronica",
            }
        }
