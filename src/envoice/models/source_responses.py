"""
Typed views of the Magaya SOAP responses.

Each schema is built from the flat map of element text produced by the source
client; a missing node becomes a SourceProtocolError naming the node instead of
propagating an undefined value.
"""

from typing import Dict, Optional

from pydantic import BaseModel

from envoice.exceptions import SourceProtocolError

NO_ERROR = "no_error"
ACCESS_DENIED = "access_denied"


def _require(operation: str, nodes: Dict[str, Optional[str]], name: str) -> str:
    value = nodes.get(name)
    if value is None:
        raise SourceProtocolError(operation, f"response has no <{name}> node")
    return value.strip()


class SessionResponse(BaseModel):
    result: str
    access_key: Optional[str] = None

    @classmethod
    def from_nodes(cls, nodes: Dict[str, Optional[str]]) -> "SessionResponse":
        access_key = nodes.get("access_key")
        return cls(
            result=_require("StartSession", nodes, "return"),
            access_key=access_key.strip() if access_key else None,
        )


class FirstPageResponse(BaseModel):
    result: str
    cookie: str
    more_results: str

    @property
    def ok(self) -> bool:
        return self.result == NO_ERROR

    @classmethod
    def from_nodes(cls, nodes: Dict[str, Optional[str]]) -> "FirstPageResponse":
        operation = "GetFirstTransbyDateJS"
        return cls(
            result=_require(operation, nodes, "return"),
            cookie=_require(operation, nodes, "cookie"),
            more_results=_require(operation, nodes, "more_results"),
        )


class NextPageResponse(BaseModel):
    cookie: str
    trans_list_xml: str
    more_results: str

    @classmethod
    def from_nodes(cls, nodes: Dict[str, Optional[str]]) -> "NextPageResponse":
        operation = "GetNextTransbyDate"
        return cls(
            cookie=_require(operation, nodes, "cookie"),
            trans_list_xml=_require(operation, nodes, "trans_list_xml"),
            more_results=_require(operation, nodes, "more_results"),
        )


class TransactionResponse(BaseModel):
    result: str
    trans_xml: str

    @classmethod
    def from_nodes(cls, nodes: Dict[str, Optional[str]]) -> "TransactionResponse":
        operation = "GetTransaction"
        return cls(
            result=_require(operation, nodes, "return"),
            trans_xml=_require(operation, nodes, "trans_xml"),
        )


class AckResponse(BaseModel):
    """Acknowledgement of SetCustomFieldValue / SetAttachment."""

    result: str

    @property
    def ok(self) -> bool:
        # Magaya answers with a non-empty status string; empty means not saved
        return bool(self.result)

    @classmethod
    def from_nodes(cls, operation: str, nodes: Dict[str, Optional[str]]) -> "AckResponse":
        return cls(result=_require(operation, nodes, "return"))
