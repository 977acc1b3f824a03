"""
Reconciliation store.

Durable table of the last known request/process labels per document id. It
compares incoming state with stored state, writes only on change, and reports
documents whose stored process state is still incomplete so a failed document
re-enters the pipeline on the next run without manual intervention.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from envoice.exceptions import InvalidRecordError
from envoice.kinds.registry import KindRegistry, kind_registry
from envoice.models.account import Account
from envoice.models.records import AccountRecord, ReconciliationRecord
from envoice.models.reconciliation import RecordState
from envoice.observability import record_reconciliation

REQUIRED_FIELDS = ("id", "kind", "account_id", "global_id")


@dataclass(frozen=True)
class ReconcileResult:
    id: str
    is_new: bool
    was_updated: bool
    # Stored state says the document still needs processing
    pending: bool


class ReconciliationStore:
    """Reconciliation table access; the session factory is injected."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        registry: KindRegistry = kind_registry,
    ):
        self._session_factory = session_factory
        self._registry = registry

    def _states(self, kind: str):
        try:
            return (
                self._registry.allowed_states(kind),
                self._registry.incomplete_states(kind),
            )
        except ValueError:
            return None

    def validate(self, record: RecordState) -> None:
        """
        Check a record before any write.

        Raises:
            InvalidRecordError: If a key field is empty, the kind is unknown or
                the process state is outside the kind's vocabulary
        """
        empty = [name for name in REQUIRED_FIELDS if not (getattr(record, name) or "").strip()]
        if empty:
            raise InvalidRecordError(record.id, f"empty field(s): {', '.join(empty)}")

        states = self._states(record.kind)
        if states is None:
            raise InvalidRecordError(record.id, f"unknown kind {record.kind!r}")
        allowed, _ = states
        if record.process_state not in allowed:
            raise InvalidRecordError(
                record.id, f"process state {record.process_state!r} is not allowed"
            )

    def _is_incomplete(self, kind: str, process_state: Optional[str]) -> bool:
        states = self._states(kind)
        return states is not None and process_state in states[1]

    def reconcile(self, record: RecordState) -> ReconcileResult:
        """
        Insert or update the record when its labels changed.

        Returns:
            ReconcileResult; ``pending`` is True for new records and for records
            whose process state is one of the kind's incomplete labels

        Raises:
            InvalidRecordError: If validation fails; nothing is written
        """
        try:
            self.validate(record)
        except InvalidRecordError:
            record_reconciliation("invalid")
            raise

        with self._session_factory() as session:
            stored = session.get(ReconciliationRecord, record.id)
            if stored is None:
                session.add(
                    ReconciliationRecord(
                        id=record.id,
                        kind=record.kind,
                        account_id=record.account_id,
                        global_id=record.global_id,
                        request_state=record.request_state,
                        process_state=record.process_state,
                        external_code=record.external_code,
                        fiscal_reference=record.fiscal_reference,
                    )
                )
                session.commit()
                record_reconciliation("inserted")
                logger.debug(f"Record {record.id} inserted as {record.process_state!r}")
                return ReconcileResult(record.id, is_new=True, was_updated=False, pending=True)

            if stored.kind != record.kind:
                record_reconciliation("invalid")
                raise InvalidRecordError(
                    record.id, f"id already stored under kind {stored.kind!r}"
                )

            changed = (
                stored.request_state != record.request_state
                or stored.process_state != record.process_state
            )
            if changed:
                stored.request_state = record.request_state
                stored.process_state = record.process_state
                stored.global_id = record.global_id
                if record.external_code:
                    stored.external_code = record.external_code
                if record.fiscal_reference:
                    stored.fiscal_reference = record.fiscal_reference
                session.commit()
                record_reconciliation("updated")
                logger.debug(f"Record {record.id} updated to {record.process_state!r}")
            else:
                record_reconciliation("unchanged")

            return ReconcileResult(
                record.id,
                is_new=False,
                was_updated=changed,
                pending=self._is_incomplete(stored.kind, stored.process_state),
            )

    def reconcile_many(
        self, records: Iterable[RecordState]
    ) -> Tuple[List[ReconcileResult], List[InvalidRecordError]]:
        """Reconcile a batch; invalid records are collected, never persisted."""
        results: List[ReconcileResult] = []
        errors: List[InvalidRecordError] = []
        for record in records:
            try:
                results.append(self.reconcile(record))
            except InvalidRecordError as e:
                logger.warning(str(e))
                errors.append(e)
        return results, errors

    def record_outcome(self, record: RecordState) -> None:
        """
        Persist a state transition produced by the submission engine.

        Unlike ``reconcile`` the labels are always written, together with any
        external code or fiscal reference.
        """
        self.validate(record)
        with self._session_factory() as session:
            stored = session.get(ReconciliationRecord, record.id)
            if stored is None:
                stored = ReconciliationRecord(
                    id=record.id,
                    kind=record.kind,
                    account_id=record.account_id,
                    global_id=record.global_id,
                )
                session.add(stored)
            stored.request_state = record.request_state
            stored.process_state = record.process_state
            if record.external_code:
                stored.external_code = record.external_code
            if record.fiscal_reference:
                stored.fiscal_reference = record.fiscal_reference
            session.commit()
        logger.debug(f"Outcome of {record.id} stored as {record.process_state!r}")

    def find(self, record_id: str) -> Optional[ReconciliationRecord]:
        with self._session_factory() as session:
            return session.get(ReconciliationRecord, record_id)

    def list_incomplete(self, kind: Optional[str] = None) -> List[ReconciliationRecord]:
        """Records whose process state is one of their kind's incomplete labels."""
        kinds = [kind] if kind else [d.record_kind.value for d in self._registry.list()]
        with self._session_factory() as session:
            records: List[ReconciliationRecord] = []
            for record_kind in dict.fromkeys(kinds):
                states = self._states(record_kind)
                if not states or not states[1]:
                    continue
                records.extend(
                    session.query(ReconciliationRecord)
                    .filter(
                        ReconciliationRecord.kind == record_kind,
                        ReconciliationRecord.process_state.in_(sorted(states[1])),
                    )
                    .order_by(ReconciliationRecord.updated_at)
                    .all()
                )
            return records

    def count_by_state(self) -> Dict[str, Dict[str, int]]:
        """{kind: {process_state: count}}"""
        with self._session_factory() as session:
            rows = (
                session.query(
                    ReconciliationRecord.kind,
                    ReconciliationRecord.process_state,
                    func.count(ReconciliationRecord.id),
                )
                .group_by(ReconciliationRecord.kind, ReconciliationRecord.process_state)
                .all()
            )
        counts: Dict[str, Dict[str, int]] = {}
        for kind, state, count in rows:
            counts.setdefault(kind, {})[state] = count
        return counts


class AccountRepository:
    """Active account list."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def list_active(self) -> List[Account]:
        with self._session_factory() as session:
            rows = (
                session.query(AccountRecord)
                .filter(AccountRecord.active.is_(True))
                .order_by(AccountRecord.id)
                .all()
            )
            return [
                Account(
                    name=row.name,
                    network_id=row.network_id,
                    source_url=row.source_url,
                    source_user=row.source_user,
                    source_password=row.source_password,
                    signing_user=row.signing_user,
                    signing_password=row.signing_password,
                )
                for row in rows
            ]

    def add(self, account: Account, active: bool = True) -> None:
        with self._session_factory() as session:
            session.add(AccountRecord(active=active, **account.model_dump()))
            session.commit()
