"""Background Enrichment Executor — bounded queue of enrichment units with job-record lifecycle.

Invariants:
    - submit() never awaits the work: it enqueues or raises EnrichmentQueueFullError
    - Each unit drives its own SyncJob: RUNNING on start, then COMPLETED with
      counts or FAILED with the exception message
    - A failing unit never kills its worker
    - shutdown() fails every unit still queued, so no job record is left PENDING

Design Decisions:
    - Workers start lazily on first submit so the executor can be built outside a loop
    - The outcome is observable only through the job record; callers keep the job id
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from gamesync.core.domain_types import SyncJobStatus
from gamesync.core.errors import EnrichmentQueueFullError
from gamesync.core.repository_protocols import SyncJobRepository

logger = logging.getLogger(__name__)

# Returns the SyncJob count fields to record, e.g. {"entries_updated": 3}
EnrichmentWork = Callable[[], Awaitable[dict[str, int]]]

SHUTDOWN_MESSAGE = "Enrichment cancelled: the service shut down before this job ran"


class BackgroundEnrichmentExecutor:
    def __init__(
        self,
        jobs: SyncJobRepository,
        *,
        max_concurrency: int = 2,
        queue_size: int = 100,
    ):
        self._jobs = jobs
        self._max_concurrency = max(1, max_concurrency)
        self._capacity = queue_size
        self._queue: asyncio.Queue[tuple[UUID, EnrichmentWork]] = asyncio.Queue(
            maxsize=queue_size,
        )
        self._workers: list[asyncio.Task] = []

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, job_id: UUID, work: EnrichmentWork) -> None:
        self._ensure_workers()
        try:
            self._queue.put_nowait((job_id, work))
        except asyncio.QueueFull:
            raise EnrichmentQueueFullError(self._capacity)
        logger.info("Enrichment job queued", extra={"job_id": job_id})

    async def drain(self) -> None:
        await self._queue.join()

    async def shutdown(self) -> int:
        """Stop the workers and fail queued units. Returns how many were failed."""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

        abandoned = 0
        while not self._queue.empty():
            job_id, _ = self._queue.get_nowait()
            self._queue.task_done()
            try:
                await self._jobs.update(job_id, {
                    "status": SyncJobStatus.FAILED, "error_message": SHUTDOWN_MESSAGE,
                })
                abandoned += 1
            except Exception:
                logger.error(
                    "Could not fail queued enrichment job", exc_info=True,
                    extra={"job_id": job_id},
                )
        if abandoned:
            logger.warning(f"Failed {abandoned} queued enrichment jobs on shutdown")
        return abandoned

    def _ensure_workers(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(), name=f"enrichment-worker-{i + 1}")
            for i in range(self._max_concurrency)
        ]

    async def _worker(self) -> None:
        while True:
            job_id, work = await self._queue.get()
            try:
                await self._run(job_id, work)
            except Exception:
                logger.error(
                    "Enrichment job bookkeeping failed", exc_info=True,
                    extra={"job_id": job_id},
                )
            finally:
                self._queue.task_done()

    async def _run(self, job_id: UUID, work: EnrichmentWork) -> None:
        await self._jobs.update(job_id, {"status": SyncJobStatus.RUNNING})
        try:
            counts = await work()
        except Exception as e:
            logger.error(
                f"Enrichment job failed: {e}", exc_info=True, extra={"job_id": job_id},
            )
            await self._jobs.update(job_id, {
                "status": SyncJobStatus.FAILED,
                "error_message": str(e) or type(e).__name__,
            })
            return
        await self._jobs.update(job_id, {"status": SyncJobStatus.COMPLETED, **counts})
        logger.info(
            f"Enrichment job completed: {counts}", extra={"job_id": job_id},
        )
