"""
Tests for the reconciliation store and the account repository.
"""

import pytest

from envoice.exceptions import InvalidRecordError
from envoice.models.account import Account
from envoice.models.reconciliation import RecordState


def record(**overrides):
    values = {
        "id": "101",
        "kind": "invoice",
        "account_id": "12345",
        "global_id": "guid-101",
        "request_state": "Emitir Factura Electronica",
        "process_state": "Sin Factura Electronica",
    }
    values.update(overrides)
    return RecordState(**values)


class TestReconcile:
    """Test change detection and idempotence."""

    def test_new_record_is_inserted_and_pending(self, store):
        result = store.reconcile(record())

        assert result.is_new and not result.was_updated and result.pending
        assert store.find("101").process_state == "Sin Factura Electronica"

    def test_repeated_reconcile_writes_nothing(self, store):
        store.reconcile(record())
        updated_at = store.find("101").updated_at

        result = store.reconcile(record())

        assert not result.is_new
        assert not result.was_updated
        assert result.pending
        assert store.find("101").updated_at == updated_at

    def test_changed_labels_are_updated(self, store):
        store.reconcile(record())

        result = store.reconcile(
            record(
                request_state="Factura Electronica Exitosa",
                process_state="Factura Electronica Exitosa",
                external_code="TAS-1",
            )
        )

        assert result.was_updated and not result.pending
        stored = store.find("101")
        assert stored.process_state == "Factura Electronica Exitosa"
        assert stored.external_code == "TAS-1"

    def test_batch_keeps_valid_records(self, store):
        """A record without global id is reported and never stored; the others are."""
        results, errors = store.reconcile_many(
            [record(), record(id="102", global_id=None), record(id="103")]
        )

        assert [r.id for r in results] == ["101", "103"]
        assert len(errors) == 1
        assert errors[0].record_id == "102"
        assert store.find("102") is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"id": ""},
            {"account_id": "  "},
            {"kind": "receipt"},
            {"process_state": "En Proceso"},
            {"process_state": None},
        ],
    )
    def test_invalid_records_are_rejected(self, store, overrides):
        with pytest.raises(InvalidRecordError):
            store.reconcile(record(**overrides))

    def test_id_under_another_kind_is_rejected(self, store):
        store.reconcile(record())

        with pytest.raises(InvalidRecordError):
            store.reconcile(
                record(
                    kind="credit_note",
                    request_state="Emitir Nota de Credito",
                    process_state="Sin Nota de Credito",
                )
            )


class TestRecordOutcome:
    """Test state transitions written by the submission engine."""

    def test_outcome_overwrites_labels_and_keeps_codes(self, store):
        store.record_outcome(
            record(
                request_state="Factura Electronica Exitosa",
                process_state="Factura Electronica Exitosa",
                external_code="TAS-1",
                fiscal_reference="CUFE-1",
            )
        )

        store.record_outcome(record(request_state="Cancelado", process_state="Cancelado"))

        stored = store.find("101")
        assert stored.process_state == "Cancelado"
        assert stored.external_code == "TAS-1"
        assert stored.fiscal_reference == "CUFE-1"

    def test_outcome_is_validated(self, store):
        with pytest.raises(InvalidRecordError):
            store.record_outcome(record(global_id=""))


class TestQueries:
    def test_list_incomplete(self, store):
        store.reconcile(record())
        store.reconcile(record(id="102", process_state="Error en Factura Electronica"))
        store.reconcile(record(id="103", process_state="Factura Electronica Exitosa"))
        store.reconcile(
            record(
                id="CM-1",
                kind="credit_note",
                request_state="Emitir Nota de Credito",
                process_state="Error en Nota de Credito",
            )
        )

        assert sorted(r.id for r in store.list_incomplete()) == ["101", "102", "CM-1"]
        assert [r.id for r in store.list_incomplete("credit_note")] == ["CM-1"]

    def test_count_by_state(self, store):
        store.reconcile(record())
        store.reconcile(record(id="102"))
        store.reconcile(record(id="103", process_state="Factura Electronica Exitosa"))

        assert store.count_by_state() == {
            "invoice": {"Sin Factura Electronica": 2, "Factura Electronica Exitosa": 1}
        }


class TestAccountRepository:
    def test_only_active_accounts_listed(self, account_repository, account):
        account_repository.add(account)
        account_repository.add(
            Account(**{**account.model_dump(), "name": "Dormant", "network_id": "2"}),
            active=False,
        )
        account_repository.add(
            Account(**{**account.model_dump(), "name": "Second", "network_id": "3"})
        )

        names = [a.name for a in account_repository.list_active()]

        assert names == ["Acme Logistics", "Second"]
