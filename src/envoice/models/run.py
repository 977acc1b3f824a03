"""
Summaries produced by one sync run.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class KindSummary(BaseModel):
    """Counters for one document kind of one account."""

    kind: str = Field(..., description="Document kind")
    fetched: int = Field(0, description="Unique documents listed by the ERP")
    eligible: int = Field(0, description="Documents the classifier admitted")
    invalid: int = Field(0, description="Records rejected by store validation")
    errors: int = Field(0, description="Documents that failed before an outcome")
    outcomes: Dict[str, int] = Field(
        default_factory=dict, description="Submission outcomes by status"
    )

    def count_outcome(self, status: str) -> None:
        self.outcomes[status] = self.outcomes.get(status, 0) + 1


class AccountSummary(BaseModel):
    account: str = Field(..., description="Account name")
    network_id: str = Field(..., description="Magaya network id")
    kinds: List[KindSummary] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Why the account was skipped")


class RunSummary(BaseModel):
    """Result of one pass over every active account."""

    run_id: str = Field(..., description="Run identifier, also present in logs")
    started_at: datetime = Field(..., description="Run start")
    finished_at: Optional[datetime] = Field(None, description="Run end")
    aborted: bool = Field(False, description="The account list could not be loaded")
    error: Optional[str] = Field(None, description="Reason of an aborted run")
    accounts: List[AccountSummary] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(
            sum(kind.outcomes.values()) for account in self.accounts for kind in account.kinds
        )

    class Config:
        json_schema_extra = {
            "example": {
                "run_id": "4b7c1f0e-2a1d-4f35-9e3b-7d0a9c2e5f11",
                "started_at": "2024-01-02T10:00:00",
                "finished_at": "2024-01-02T10:02:31",
                "aborted": False,
                "error": None,
                "accounts": [
                    {
                        "account": "Acme Logistics",
                        "network_id": "12345",
                        "kinds": [
                            {
                                "kind": "invoice",
                                "fetched": 3,
                                "eligible": 1,
                                "invalid": 0,
                                "errors": 0,
                                "outcomes": {"confirmed": 1},
                            }
                        ],
                        "error": None,
                    }
                ],
            }
        }
