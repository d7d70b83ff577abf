"""Sync Scheduler — in-memory recurring sync timers, one per account.

Invariants:
    - At most one timer per account: scheduling cancels the previous one first
    - A failing sync callback is logged and the loop keeps its schedule
    - Cancelling a timer never interrupts a sync already in flight past its sleep
    - shutdown() waits for in-flight syncs, so none outlives the database
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from gamesync.core.errors import InputValidationError

logger = logging.getLogger(__name__)

SyncCallback = Callable[[UUID, int], Awaitable[object]]


class SyncScheduler:
    def __init__(
        self,
        run_sync: SyncCallback,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._run_sync = run_sync
        self._sleep = sleep
        self._tasks: dict[UUID, asyncio.Task] = {}
        self._in_flight: set[asyncio.Task] = set()

    def schedule(self, account_id: UUID, owner_id: int, interval_minutes: int) -> None:
        if not isinstance(interval_minutes, int) or interval_minutes < 1:
            raise InputValidationError(
                "Sync interval must be at least 1 minute", "interval_minutes",
            )
        self.cancel(account_id)
        self._tasks[account_id] = asyncio.create_task(
            self._loop(account_id, owner_id, interval_minutes * 60),
            name=f"sync-schedule-{account_id}",
        )
        logger.info(
            f"Scheduled sync every {interval_minutes} minutes",
            extra={"account_id": account_id},
        )

    def cancel(self, account_id: UUID) -> bool:
        task = self._tasks.pop(account_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info("Cancelled scheduled sync", extra={"account_id": account_id})
        return True

    def is_scheduled(self, account_id: UUID) -> bool:
        return account_id in self._tasks

    def scheduled_accounts(self) -> list[UUID]:
        return list(self._tasks)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} in-flight scheduled syncs")
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _loop(self, account_id: UUID, owner_id: int, interval_seconds: float) -> None:
        while True:
            await self._sleep(interval_seconds)
            try:
                run = asyncio.create_task(self._run_sync(account_id, owner_id))
                self._in_flight.add(run)
                run.add_done_callback(self._in_flight.discard)
                await asyncio.shield(run)
            except Exception:
                logger.error(
                    "Scheduled sync failed", exc_info=True,
                    extra={"account_id": account_id},
                )
