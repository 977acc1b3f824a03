"""
Account model - a tenant whose ERP documents are synchronised.
"""

from pydantic import BaseModel, Field


class Account(BaseModel):
    """Credentials and endpoints for one managed account."""

    name: str = Field(..., description="Display name")
    network_id: str = Field(..., description="Magaya network id")
    source_url: str = Field(..., description="Magaya SOAP endpoint URL")
    source_user: str = Field(..., description="Magaya user")
    source_password: str = Field(..., description="Magaya password", repr=False)
    signing_user: str = Field(..., description="LaFactura.co user")
    signing_password: str = Field(..., description="LaFactura.co password", repr=False)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Acme Logistics",
                "network_id": "12345",
                "source_url": "https://12345.magayacloud.com/CSSoapService",
                "source_user": "api",
                "source_password": "secret",
                "signing_user": "acme",
                "signing_password": "secret",
            }
        }
