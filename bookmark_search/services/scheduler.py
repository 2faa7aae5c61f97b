"""
Background task that keeps the index up to date.

Runs a full sync at startup and an incremental sync every interval. The sync
service's lock keeps these passes from overlapping with syncs triggered
through the API.
"""

import asyncio
import logging
from typing import Optional

from bookmark_search.services.sync import SyncService

logger = logging.getLogger(__name__)


class BackgroundSync:
    """Periodic incremental sync running as an asyncio task."""

    def __init__(self, sync_service: SyncService, interval_minutes: float):
        """
        Initialize background sync.

        Args:
            sync_service: Service performing the syncs.
            interval_minutes: Minutes between incremental syncs; 0 or less runs
                only the initial sync.
        """
        self.sync_service = sync_service
        self.interval_seconds = interval_minutes * 60
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        """Whether the background task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the background task (no-op if already running)."""
        if self.running:
            return self._task

        logger.info(f"Starting background sync every {self.interval_seconds / 60:g} minutes")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="background-sync")
        return self._task

    async def stop(self):
        """Stop the background task and wait for it to finish."""
        if self._task is None:
            return

        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("Background sync stopped")

    async def _wait_interval(self) -> bool:
        """
        Sleep for one interval.

        Returns:
            True if stop was requested during the wait
        """
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run(self):
        # Initial sync
        try:
            await self.sync_service.sync_incremental()
        except Exception as e:
            logger.error(f"Initial sync failed: {e}", exc_info=True)

        if self.interval_seconds <= 0:
            logger.info("Periodic sync disabled (interval <= 0)")
            return

        while not await self._wait_interval():
            try:
                await self.sync_service.sync_incremental()
            except Exception as e:
                logger.error(f"Background sync failed: {e}", exc_info=True)
