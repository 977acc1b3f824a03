"""
Periodic sync trigger - background task started with the API.
"""

import asyncio
from datetime import datetime
from typing import Optional

from loguru import logger

from envoice.exceptions import SyncAlreadyRunningError
from envoice.models.run import RunSummary
from envoice.orchestrator import SyncOrchestrator


class SyncScheduler:
    """
    Calls the orchestrator every ``interval`` seconds.

    A tick that finds the previous run still in flight is skipped, so runs
    never overlap inside one process.
    """

    def __init__(self, orchestrator: SyncOrchestrator, interval: float = 300):
        """
        Initialize the scheduler.

        Args:
            orchestrator: Orchestrator whose ``run_once`` is called
            interval: Seconds between ticks (default 300 = 5min)
        """
        self.orchestrator = orchestrator
        self.interval = interval
        self.last_tick: Optional[datetime] = None
        self.skipped_ticks = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start_scheduling(self):
        """Start the scheduling loop."""
        self._running = True
        logger.info(f"Starting sync scheduler (interval={self.interval}s)")

        while self._running:
            try:
                await self.tick()
                await asyncio.sleep(self.interval)

            except asyncio.CancelledError:
                logger.info("Sync scheduler cancelled")
                break
            except Exception as e:
                logger.error(f"Error in sync scheduler: {e}")
                # Keep scheduling despite errors
                await asyncio.sleep(self.interval)

        self._running = False

    async def tick(self) -> Optional[RunSummary]:
        """Run one pass unless one is already in flight."""
        self.last_tick = datetime.now()
        if self.orchestrator.is_running:
            self.skipped_ticks += 1
            logger.info("Previous sync run still in progress, tick skipped")
            return None
        try:
            return await self.orchestrator.run_once()
        except SyncAlreadyRunningError:
            self.skipped_ticks += 1
            logger.info("Sync run started elsewhere, tick skipped")
            return None

    async def trigger(self) -> RunSummary:
        """
        Run one pass on demand.

        Raises:
            SyncAlreadyRunningError: If a pass is already in flight
        """
        return await self.orchestrator.run_once()

    def start(self) -> asyncio.Task:
        """Start the loop as a background task on the running event loop."""
        self._task = asyncio.create_task(self.start_scheduling())
        return self._task

    async def stop(self):
        """Stop the loop and wait for the background task to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Sync scheduler stopped")
