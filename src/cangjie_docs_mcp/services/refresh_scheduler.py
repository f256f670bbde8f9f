"""Periodic corpus refresh: pull the corpus repository and rebuild the index.

Runs on a cron schedule. Each cycle updates the git checkout (when one is
configured) and then asks the runtime for a new snapshot; a failed cycle
leaves the previous snapshot serving and retries with exponential backoff.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging

from cron_converter import Cron

from ..service_layer.corpus import CorpusRuntime
from ..utils.git_sync import CorpusRepoSyncer, GitSyncError, GitSyncResult


logger = logging.getLogger(__name__)

BASE_RETRY_DELAY_SECONDS = 60
MAX_RETRY_DELAY_SECONDS = 3600
MAX_POLL_SECONDS = 60


class CorpusRefreshScheduler:
    """Cron-driven sync and rebuild loop around a `CorpusRuntime`."""

    def __init__(
        self,
        runtime: CorpusRuntime,
        syncer: CorpusRepoSyncer | None = None,
        refresh_schedule: str | None = None,
        enabled: bool = True,
    ):
        """Initialize the refresh scheduler.

        Args:
            runtime: Runtime whose snapshot is rebuilt after every sync
            syncer: Git syncer for the corpus checkout; None rebuilds from disk only
            refresh_schedule: Cron expression; no background loop runs without one
            enabled: Whether the scheduler may start at all
        """
        self.runtime = runtime
        self.syncer = syncer
        self.refresh_schedule = refresh_schedule
        self.enabled = enabled

        self._running = False
        self._scheduler_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

        self._total_refreshes = 0
        self._last_refresh_at: datetime | None = None
        self._next_refresh_at: datetime | None = None
        self._last_result: GitSyncResult | None = None
        self._errors = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        """Return lightweight scheduler stats for the health endpoint."""
        return {
            "refresh_schedule": self.refresh_schedule,
            "running": self._running,
            "total_refreshes": self._total_refreshes,
            "last_refresh_at": self._last_refresh_at.isoformat() if self._last_refresh_at else None,
            "next_refresh_at": self._next_refresh_at.isoformat() if self._next_refresh_at else None,
            "errors": self._errors,
            "last_commit_id": self._last_result.commit_id if self._last_result else None,
        }

    async def start(self) -> bool:
        """Start the background loop. Returns False when disabled or unscheduled."""
        if not self.enabled:
            logger.debug("Corpus refresh scheduler disabled")
            return False
        if not self.refresh_schedule:
            logger.info("Corpus refresh scheduler idle (no cron schedule)")
            return False
        if self._scheduler_task is not None and not self._scheduler_task.done():
            return True

        self._running = True
        self._stop_event.clear()
        self._scheduler_task = asyncio.create_task(self._run_scheduler())
        logger.info("Corpus refresh scheduler started with schedule: %s", self.refresh_schedule)
        return True

    async def trigger_refresh(self) -> dict:
        """Run one sync and rebuild cycle now."""
        ok = await self._do_refresh()
        if ok:
            commit = self._last_result.commit_id if self._last_result else None
            return {"success": True, "message": "Corpus refreshed", "commit_id": commit}
        return {"success": False, "message": self.runtime.last_error or "Corpus refresh failed"}

    async def _do_refresh(self) -> bool:
        if self.syncer is not None:
            try:
                self._last_result = await self.syncer.update()
            except GitSyncError as exc:
                self._errors += 1
                logger.error("Corpus sync failed: %s", exc)
                return False

        rebuilt = await self.runtime.rebuild()
        if not rebuilt:
            self._errors += 1
            return False

        self._total_refreshes += 1
        self._last_refresh_at = datetime.now(timezone.utc)
        return True

    async def _run_scheduler(self) -> None:
        if not self.refresh_schedule:
            return

        consecutive_failures = 0
        try:
            cron = Cron(self.refresh_schedule)
            started_at = datetime.now(timezone.utc)

            while not self._stop_event.is_set():
                now = datetime.now(timezone.utc)
                next_run = cron.schedule(start_date=self._last_refresh_at or started_at).next()
                self._next_refresh_at = next_run

                if next_run <= now:
                    logger.info("Running scheduled corpus refresh")
                    if await self._do_refresh():
                        consecutive_failures = 0
                        continue
                    consecutive_failures += 1
                    delay = min(BASE_RETRY_DELAY_SECONDS * (2 ** (consecutive_failures - 1)), MAX_RETRY_DELAY_SECONDS)
                    logger.warning(
                        "Scheduled corpus refresh failed (attempt %d), waiting %ds before retry",
                        consecutive_failures,
                        delay,
                    )
                    if await self._wait(delay):
                        break
                else:
                    wait_seconds = min((next_run - now).total_seconds(), MAX_POLL_SECONDS)
                    logger.debug("Next corpus refresh in %.0fs at %s", wait_seconds, next_run)
                    if await self._wait(wait_seconds):
                        break
        except Exception as exc:
            logger.error("Corpus refresh scheduler error: %s", exc, exc_info=True)
        finally:
            self._running = False

    async def _wait(self, seconds: float) -> bool:
        """Sleep until `seconds` pass or stop is requested; True means stop."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return False
        return True

    async def stop(self) -> None:
        self._stop_event.set()
        if self._scheduler_task is not None and not self._scheduler_task.done():
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                pass
            finally:
                self._scheduler_task = None
        self._running = False
