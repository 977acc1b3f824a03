"""
Sync orchestrator: one pass over every active account.

Accounts are processed sequentially with a pause between them; inside an
account each kind is fetched, classified, reconciled and processed document by
document. Failures are contained at the narrowest loop that can continue:
a document, then a kind, then an account. Only a failure to load the account
list aborts the run, and even then the process keeps running.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from loguru import logger

from envoice.config import Settings
from envoice.exceptions import (
    ExternalServiceException,
    InfrastructureException,
    InvalidRecordError,
    SyncAlreadyRunningError,
)
from envoice.infrastructure import Database, RedisClient
from envoice.kinds.base import KindDescriptor
from envoice.kinds.registry import KindRegistry, kind_registry
from envoice.logging import get_run_id, set_run_id
from envoice.models.account import Account
from envoice.models.document import DocumentKind
from envoice.models.reconciliation import RecordState
from envoice.models.run import AccountSummary, KindSummary, RunSummary
from envoice.observability import end_run_timer, record_sync_run, start_run_timer
from envoice.services.classifier import EligibilityClassifier
from envoice.services.fetcher import DocumentFetcher
from envoice.services.guard import InMemoryGuardStore, RedisGuardStore
from envoice.services.propagator import FieldPropagator
from envoice.services.reconciliation_store import AccountRepository, ReconciliationStore
from envoice.services.retry_service import RetryPolicy
from envoice.services.session_service import SessionService
from envoice.services.signing_client import LaFacturaClient
from envoice.services.source_client import MagayaClient
from envoice.services.submission import SubmissionEngine

_external_errors = (InfrastructureException, ExternalServiceException)


class SyncOrchestrator:
    """Drives fetch -> classify -> reconcile -> submit for all active accounts."""

    def __init__(
        self,
        accounts: AccountRepository,
        sessions: SessionService,
        fetcher: DocumentFetcher,
        classifier: EligibilityClassifier,
        store: ReconciliationStore,
        engine: SubmissionEngine,
        registry: KindRegistry = kind_registry,
        account_pause_seconds: float = 1.5,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.accounts = accounts
        self.sessions = sessions
        self.fetcher = fetcher
        self.classifier = classifier
        self.store = store
        self.engine = engine
        self.registry = registry
        self.account_pause_seconds = account_pause_seconds
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._current_run_id: Optional[str] = None
        self.last_summary: Optional[RunSummary] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        database: Database,
        redis_client: Optional[RedisClient] = None,
    ) -> "SyncOrchestrator":
        """Wire the default collaborators from settings."""
        if settings.redis_enabled and redis_client is not None:
            guard_store = RedisGuardStore(redis_client)
        else:
            guard_store = InMemoryGuardStore()

        source = MagayaClient(timeout=settings.source_timeout)
        signing = LaFacturaClient(settings.lafactura_url, timeout=settings.signing_timeout)
        store = ReconciliationStore(database.SessionLocal)
        sessions = SessionService(
            source,
            guard_store,
            ttl_seconds=settings.session_ttl_seconds,
            retry_policy=RetryPolicy(
                max_attempts=settings.session_max_attempts,
                initial_delay=settings.session_initial_delay,
                backoff_factor=settings.session_backoff_factor,
            ),
        )
        engine = SubmissionEngine(
            source,
            signing,
            FieldPropagator(source),
            store,
            guard_store,
            guard_ttl=settings.guard_ttl_seconds,
        )
        return cls(
            accounts=AccountRepository(database.SessionLocal),
            sessions=sessions,
            fetcher=DocumentFetcher(source),
            classifier=EligibilityClassifier(source, store),
            store=store,
            engine=engine,
            account_pause_seconds=settings.account_pause_seconds,
        )

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def current_run_id(self) -> Optional[str]:
        return self._current_run_id

    async def run_once(self, kinds: Optional[Iterable[DocumentKind]] = None) -> RunSummary:
        """
        Run one pass over all active accounts.

        Args:
            kinds: Restrict the pass to these kinds (default: every registered kind)

        Returns:
            RunSummary of the pass, also kept in ``last_summary``

        Raises:
            SyncAlreadyRunningError: If a pass is already in flight in this process
        """
        if self._lock.locked():
            raise SyncAlreadyRunningError(self._current_run_id)

        async with self._lock:
            run_id = str(uuid.uuid4())
            previous_run_id = get_run_id()
            set_run_id(run_id)
            self._current_run_id = run_id
            start_run_timer(run_id)
            summary = RunSummary(run_id=run_id, started_at=datetime.now())
            try:
                await self._run(summary, kinds)
            finally:
                summary.finished_at = datetime.now()
                end_run_timer(run_id)
                record_sync_run("aborted" if summary.aborted else "completed")
                self.last_summary = summary
                self._current_run_id = None
                set_run_id(previous_run_id)
        return summary

    async def _run(
        self, summary: RunSummary, kinds: Optional[Iterable[DocumentKind]]
    ) -> None:
        descriptors = self._descriptors(kinds)
        try:
            accounts = self.accounts.list_active()
        except Exception as e:
            logger.error(f"Could not load active accounts, run aborted: {e}")
            summary.aborted = True
            summary.error = str(e)
            return

        logger.info(f"Sync run started for {len(accounts)} active account(s)")
        for index, account in enumerate(accounts):
            if index > 0 and self.account_pause_seconds > 0:
                await self._sleep(self.account_pause_seconds)
            summary.accounts.append(await self._sync_account(account, descriptors))

        logger.info(f"Sync run finished: {summary.processed} document(s) processed")

    def _descriptors(self, kinds: Optional[Iterable[DocumentKind]]) -> List[KindDescriptor]:
        if kinds is None:
            return self.registry.list()
        return [self.registry.get(DocumentKind(kind)) for kind in kinds]

    async def _sync_account(
        self, account: Account, descriptors: List[KindDescriptor]
    ) -> AccountSummary:
        account_summary = AccountSummary(account=account.name, network_id=account.network_id)
        try:
            access_key = await self.sessions.get_access_key(account)
        except Exception as e:
            logger.error(f"Account {account.name} skipped, no session: {e}")
            account_summary.error = str(e)
            return account_summary

        for descriptor in descriptors:
            try:
                kind_summary = await self._sync_kind(account, access_key, descriptor)
            except Exception as e:
                logger.error(f"{descriptor.name} sync failed for account {account.name}: {e}")
                kind_summary = KindSummary(kind=descriptor.name, errors=1)
            account_summary.kinds.append(kind_summary)
        return account_summary

    async def _sync_kind(
        self, account: Account, access_key: str, descriptor: KindDescriptor
    ) -> KindSummary:
        summary = KindSummary(kind=descriptor.name)
        documents = await self.fetcher.fetch(account, access_key, descriptor)
        summary.fetched = len(documents)

        work = []
        for listed in documents:
            try:
                document = await self.classifier.load(account, access_key, descriptor, listed)
            except _external_errors as e:
                logger.error(f"Could not load {descriptor.name} {listed.id}: {e}")
                summary.errors += 1
                continue

            classification = self.classifier.classify(account.network_id, descriptor, document)
            if not classification.eligible:
                continue
            summary.eligible += 1

            if descriptor.tracks_state:
                record = RecordState.from_document(
                    document, account.network_id, descriptor.record_kind.value
                )
                try:
                    result = self.store.reconcile(record)
                except InvalidRecordError as e:
                    logger.warning(str(e))
                    summary.invalid += 1
                    continue
                if not result.pending:
                    continue
            work.append(document)

        if not work:
            return summary

        try:
            prefix = await self.engine.resolve_prefix(account, descriptor)
        except _external_errors as e:
            logger.error(f"No {descriptor.name} prefix for account {account.name}: {e}")
            summary.errors += len(work)
            return summary

        for document in work:
            try:
                outcome = await self.engine.process(
                    account, access_key, descriptor, document, prefix
                )
            except Exception as e:
                logger.error(f"Unexpected error processing {descriptor.name} {document.id}: {e}")
                summary.errors += 1
                continue
            summary.count_outcome(outcome.status.value)
        return summary
