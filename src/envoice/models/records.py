"""
ORM models persisted in the reconciliation database.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from envoice.infrastructure.database import Base


class AccountRecord(Base):
    """Managed account with ERP and signing credentials."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    network_id = Column(String(64), nullable=False)
    source_url = Column(String(512), nullable=False)
    source_user = Column(String(255), nullable=False)
    source_password = Column(String(255), nullable=False)
    signing_user = Column(String(255), nullable=False)
    signing_password = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)


class ReconciliationRecord(Base):
    """Last known request/process state of one document."""

    __tablename__ = "reconciliation_records"

    id = Column(String(64), primary_key=True)
    kind = Column(String(32), nullable=False)
    account_id = Column(String(64), nullable=False, index=True)
    global_id = Column(String(64), nullable=False)
    request_state = Column(String(128), nullable=True)
    process_state = Column(String(128), nullable=False, index=True)
    external_code = Column(String(128), nullable=True)
    fiscal_reference = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
