"""
Tests for the sync orchestrator and the periodic scheduler.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from envoice.exceptions import (
    AuthenticationError,
    SigningTransportError,
    SourceProtocolError,
    SyncAlreadyRunningError,
)
from envoice.models.account import Account
from envoice.models.document import Document, DocumentKind
from envoice.models.run import RunSummary
from envoice.orchestrator import SyncOrchestrator
from envoice.scheduler import SyncScheduler
from envoice.services.classifier import EligibilityClassifier
from envoice.services.submission import OutcomeStatus, SubmissionOutcome

from conftest import SleepRecorder


def listed(number, request_state="Emitir Factura Electronica", process_state="Sin Factura Electronica"):
    return Document(
        id=number,
        kind=DocumentKind.INVOICE,
        global_id=f"guid-{number}",
        request_state=request_state,
        process_state=process_state,
    )


def confirmed(document_id):
    return SubmissionOutcome(
        document_id=document_id, kind="invoice", status=OutcomeStatus.CONFIRMED
    )


class Harness:
    """Orchestrator over mocked fetcher, sessions and engine, with a real store and classifier."""

    def __init__(self, store, accounts, documents=()):
        self.accounts = Mock()
        self.accounts.list_active = Mock(return_value=list(accounts))

        self.sessions = Mock()
        self.sessions.get_access_key = AsyncMock(return_value="KEY")

        self.fetcher = Mock()
        self.fetcher.fetch = AsyncMock(return_value=list(documents))

        self.classifier = EligibilityClassifier(Mock(), store)
        # Listed documents already carry their status fields
        self.classifier.load = AsyncMock(side_effect=lambda account, key, descriptor, doc: doc)

        self.engine = Mock()
        self.engine.resolve_prefix = AsyncMock(return_value="SETT")
        self.engine.process = AsyncMock(
            side_effect=lambda account, key, descriptor, doc, prefix: confirmed(doc.id)
        )

        self.sleep = SleepRecorder()
        self.orchestrator = SyncOrchestrator(
            accounts=self.accounts,
            sessions=self.sessions,
            fetcher=self.fetcher,
            classifier=self.classifier,
            store=store,
            engine=self.engine,
            sleep=self.sleep,
        )

    def run(self, kinds=(DocumentKind.INVOICE,)):
        return asyncio.run(self.orchestrator.run_once(list(kinds)))


def second_account(account):
    return Account(**{**account.model_dump(), "name": "Second", "network_id": "67890"})


class TestSyncOrchestrator:
    """Test one pass over the accounts."""

    def test_eligible_documents_are_processed(self, store, account):
        harness = Harness(
            store,
            [account],
            [listed("101"), listed("102", process_state="Factura Electronica Exitosa")],
        )

        summary = harness.run()

        kind = summary.accounts[0].kinds[0]
        assert (kind.fetched, kind.eligible, kind.errors) == (2, 1, 0)
        assert kind.outcomes == {"confirmed": 1}
        assert summary.processed == 1
        assert summary.finished_at is not None
        assert harness.engine.process.await_args.args[3].id == "101"
        assert harness.engine.process.await_args.args[4] == "SETT"
        assert store.find("101").process_state == "Sin Factura Electronica"
        assert harness.orchestrator.last_summary is summary

    def test_invalid_records_are_counted_and_skipped(self, store, account):
        document = listed("101")
        document.global_id = None
        harness = Harness(store, [account], [document])

        kind = harness.run().accounts[0].kinds[0]

        assert kind.invalid == 1
        harness.engine.process.assert_not_awaited()

    def test_load_errors_do_not_stop_the_kind(self, store, account):
        harness = Harness(store, [account], [listed("101"), listed("102")])

        async def load(account, key, descriptor, doc):
            if doc.id == "101":
                raise SourceProtocolError("GetTransaction", "document 101 not returned")
            return doc

        harness.classifier.load = AsyncMock(side_effect=load)

        kind = harness.run().accounts[0].kinds[0]

        assert kind.errors == 1
        assert kind.outcomes == {"confirmed": 1}

    def test_prefix_failure_counts_every_document(self, store, account):
        harness = Harness(store, [account], [listed("101"), listed("102")])
        harness.engine.resolve_prefix.side_effect = SigningTransportError("general/")

        kind = harness.run().accounts[0].kinds[0]

        assert kind.errors == 2
        harness.engine.process.assert_not_awaited()

    def test_unexpected_document_error_is_contained(self, store, account):
        harness = Harness(store, [account], [listed("101"), listed("102")])
        harness.engine.process.side_effect = [RuntimeError("boom"), confirmed("102")]

        kind = harness.run().accounts[0].kinds[0]

        assert kind.errors == 1
        assert kind.outcomes == {"confirmed": 1}

    def test_accounts_are_paused_between(self, store, account):
        harness = Harness(store, [account, second_account(account)])

        summary = harness.run()

        assert [a.network_id for a in summary.accounts] == ["12345", "67890"]
        assert harness.sleep.delays == [1.5]

    def test_account_without_session_is_skipped(self, store, account):
        harness = Harness(store, [account, second_account(account)])
        harness.sessions.get_access_key.side_effect = [
            AuthenticationError(account.name, "access denied"),
            "KEY",
        ]

        summary = harness.run()

        assert "access denied" in summary.accounts[0].error
        assert summary.accounts[0].kinds == []
        assert summary.accounts[1].error is None
        assert harness.fetcher.fetch.await_count == 1

    def test_kind_failure_does_not_stop_the_account(self, store, account):
        harness = Harness(store, [account])
        harness.fetcher.fetch.side_effect = [RuntimeError("boom"), []]

        summary = harness.run(kinds=(DocumentKind.INVOICE, DocumentKind.CREDIT_NOTE))

        kinds = summary.accounts[0].kinds
        assert [k.kind for k in kinds] == ["invoice", "credit_note"]
        assert kinds[0].errors == 1

    def test_account_list_failure_aborts_the_run(self, store):
        harness = Harness(store, [])
        harness.accounts.list_active.side_effect = RuntimeError("database down")

        summary = harness.run()

        assert summary.aborted
        assert summary.error == "database down"
        assert summary.accounts == []

    def test_overlapping_run_is_refused(self, store, account):
        harness = Harness(store, [account])
        gate = asyncio.Event()

        async def blocked_session(account):
            await gate.wait()
            return "KEY"

        harness.sessions.get_access_key.side_effect = blocked_session
        orchestrator = harness.orchestrator

        async def scenario():
            first = asyncio.create_task(orchestrator.run_once([DocumentKind.INVOICE]))
            await asyncio.sleep(0)
            assert orchestrator.is_running
            assert orchestrator.current_run_id is not None
            with pytest.raises(SyncAlreadyRunningError):
                await orchestrator.run_once()
            gate.set()
            return await first

        summary = asyncio.run(scenario())

        assert not summary.aborted
        assert not orchestrator.is_running
        assert orchestrator.current_run_id is None


class TestSyncScheduler:
    """Test the periodic trigger."""

    def summary(self):
        return RunSummary(run_id="r1", started_at=datetime.now())

    def test_tick_runs_a_pass(self):
        orchestrator = Mock()
        orchestrator.is_running = False
        orchestrator.run_once = AsyncMock(return_value=self.summary())
        scheduler = SyncScheduler(orchestrator, interval=300)

        result = asyncio.run(scheduler.tick())

        assert result.run_id == "r1"
        assert scheduler.last_tick is not None
        assert scheduler.skipped_ticks == 0

    def test_tick_skipped_while_running(self):
        orchestrator = Mock()
        orchestrator.is_running = True
        orchestrator.run_once = AsyncMock()
        scheduler = SyncScheduler(orchestrator)

        assert asyncio.run(scheduler.tick()) is None
        assert scheduler.skipped_ticks == 1
        orchestrator.run_once.assert_not_awaited()

    def test_tick_skipped_on_race(self):
        orchestrator = Mock()
        orchestrator.is_running = False
        orchestrator.run_once = AsyncMock(side_effect=SyncAlreadyRunningError("r0"))
        scheduler = SyncScheduler(orchestrator)

        assert asyncio.run(scheduler.tick()) is None
        assert scheduler.skipped_ticks == 1

    def test_start_and_stop(self):
        orchestrator = Mock()
        orchestrator.is_running = False
        orchestrator.run_once = AsyncMock(return_value=self.summary())
        scheduler = SyncScheduler(orchestrator, interval=3600)

        async def scenario():
            scheduler.start()
            await asyncio.sleep(0.01)
            running = scheduler.running
            await scheduler.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert not scheduler.running
        orchestrator.run_once.assert_awaited_once()
