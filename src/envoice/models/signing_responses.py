"""
Typed views of the LaFactura.co JSON responses.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from envoice.exceptions import SigningProtocolError

ACCEPTED_STATUS = 200

PROCESS_PENDING = 0
PROCESS_REJECTED = 1
PROCESS_CONFIRMED = 2


def _result_block(endpoint: str, body: Any, key: str) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise SigningProtocolError(endpoint, "response body is not a JSON object")
    block = body.get(key, body)
    if not isinstance(block, dict):
        raise SigningProtocolError(endpoint, f"'{key}' is not an object")
    return block


def _as_int(endpoint: str, value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SigningProtocolError(endpoint, f"'{name}' is not numeric: {value!r}")


class SubmitResult(BaseModel):
    """Outcome of a submit call (invoice, credit note or cancellation)."""

    status_code: int = Field(..., description="Business status code, 200 = accepted")
    status_text: str = Field("", description="Human readable status message")
    external_code: Optional[str] = Field(None, description="tascode")
    fiscal_reference: Optional[str] = Field(None, description="CUFE / CUDE")
    process: Optional[int] = Field(
        None, description="Finalisation state when already reported"
    )
    url: Optional[str] = Field(None, description="Artifact URL when already reported")

    @property
    def accepted(self) -> bool:
        return self.status_code == ACCEPTED_STATUS

    @classmethod
    def from_body(cls, endpoint: str, body: Any) -> "SubmitResult":
        block = _result_block(endpoint, body, "invoiceResult")
        status = block.get("status")
        if not isinstance(status, dict) or "code" not in status:
            raise SigningProtocolError(endpoint, "response has no status.code")

        documento = block.get("documento") or {}
        document = block.get("document") or {}
        process = document.get("process")
        return cls(
            status_code=_as_int(endpoint, status["code"], "status.code"),
            status_text=str(status.get("text") or ""),
            external_code=documento.get("tascode"),
            fiscal_reference=documento.get("CUFE") or documento.get("CUDE"),
            process=_as_int(endpoint, process, "document.process")
            if process is not None
            else None,
            url=document.get("URL"),
        )


class StatusResult(BaseModel):
    """Outcome of a verifyStatus poll."""

    process: int = Field(..., description="0 pending, 1 rejected, 2 confirmed")
    url: Optional[str] = Field(None, description="Artifact URL when confirmed")

    @property
    def terminal(self) -> bool:
        return self.process != PROCESS_PENDING

    @classmethod
    def from_body(cls, endpoint: str, body: Any) -> "StatusResult":
        block = _result_block(endpoint, body, "invoiceResult")
        document = block.get("document")
        if not isinstance(document, dict) or "process" not in document:
            raise SigningProtocolError(endpoint, "response has no document.process")
        return cls(
            process=_as_int(endpoint, document["process"], "document.process"),
            url=document.get("URL"),
        )


class RangesResult(BaseModel):
    """Active numbering ranges; only the prefix per document type is used."""

    prefixes: Dict[str, str] = Field(default_factory=dict)

    def prefix_for(self, range_type: str) -> str:
        return self.prefixes.get(range_type, "")

    @classmethod
    def from_body(cls, endpoint: str, body: Any) -> "RangesResult":
        block = _result_block(endpoint, body, "generalResult")
        ranges = block.get("ranges") or []
        if isinstance(ranges, dict):
            ranges = [ranges]
        prefixes: Dict[str, str] = {}
        items: List[Any] = ranges if isinstance(ranges, list) else []
        for item in items:
            if isinstance(item, dict) and item.get("type"):
                prefixes.setdefault(item["type"], item.get("prefix") or "")
        return cls(prefixes=prefixes)
