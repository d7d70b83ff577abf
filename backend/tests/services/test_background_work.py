"""Background enrichment executor and sync scheduler.

Invariants:
    - Each enrichment unit drives its own job: RUNNING, then COMPLETED or FAILED
    - A full queue rejects new work with EnrichmentQueueFullError
    - Shutdown fails every unit still queued instead of leaving it PENDING
    - Scheduling an account twice keeps a single timer
    - A failing scheduled sync does not stop the schedule
    - Scheduler shutdown waits for a sync already in flight
"""

import asyncio
from uuid import uuid4

import pytest

from gamesync.core.domain_types import SyncJobType
from gamesync.core.errors import EnrichmentQueueFullError, InputValidationError
from gamesync.services.background_enrichment import (
    SHUTDOWN_MESSAGE, BackgroundEnrichmentExecutor,
)
from gamesync.services.sync_scheduler import SyncScheduler


@pytest.fixture
async def enrichment_job(jobs, steam_account):
    return await jobs.create(steam_account.id, SyncJobType.METADATA_ENRICHMENT.value)


async def test_completed_work_records_counts(executor, jobs, enrichment_job):
    async def work():
        return {"entries_processed": 3, "entries_updated": 2}

    executor.submit(enrichment_job.id, work)
    await executor.drain()

    job = await jobs.get(enrichment_job.id)
    assert job.status == "completed"
    assert job.entries_processed == 3
    assert job.entries_updated == 2


async def test_failed_work_records_error(executor, jobs, enrichment_job):
    async def work():
        raise RuntimeError("provider exploded")

    executor.submit(enrichment_job.id, work)
    await executor.drain()

    job = await jobs.get(enrichment_job.id)
    assert job.status == "failed"
    assert job.error_message == "provider exploded"


async def test_worker_survives_failure(executor, jobs, steam_account):
    first = await jobs.create(steam_account.id, SyncJobType.METADATA_ENRICHMENT.value)
    second = await jobs.create(steam_account.id, SyncJobType.METADATA_ENRICHMENT.value)

    async def boom():
        raise ValueError()

    async def ok():
        return {}

    executor.submit(first.id, boom)
    executor.submit(second.id, ok)
    await executor.drain()

    assert (await jobs.get(first.id)).error_message == "ValueError"
    assert (await jobs.get(second.id)).status == "completed"


async def test_full_queue_rejects_work(jobs):
    executor = BackgroundEnrichmentExecutor(jobs, max_concurrency=1, queue_size=1)
    gate = asyncio.Event()

    async def blocked():
        await gate.wait()
        return {}

    try:
        executor.submit(uuid4(), blocked)
        await asyncio.sleep(0)  # worker takes the first unit off the queue
        executor.submit(uuid4(), blocked)
        with pytest.raises(EnrichmentQueueFullError):
            executor.submit(uuid4(), blocked)
    finally:
        gate.set()
        await executor.shutdown()


async def test_shutdown_fails_queued_jobs(jobs, steam_account):
    executor = BackgroundEnrichmentExecutor(jobs, max_concurrency=1, queue_size=10)
    queued = [
        await jobs.create(steam_account.id, SyncJobType.METADATA_ENRICHMENT.value)
        for _ in range(3)
    ]

    async def never_finishes():
        await asyncio.Event().wait()
        return {}

    for job in queued:
        executor.submit(job.id, never_finishes)
    for _ in range(100):
        if (await jobs.get(queued[0].id)).status == "running":
            break
        await asyncio.sleep(0.01)

    abandoned = await executor.shutdown()

    assert abandoned == 2
    for job in queued[1:]:
        record = await jobs.get(job.id)
        assert record.status == "failed"
        assert record.error_message == SHUTDOWN_MESSAGE
    assert executor.pending == 0


class Recorder:
    def __init__(self, fail: bool = False):
        self.calls: list[tuple] = []
        self.fail = fail
        self.ran = asyncio.Event()

    async def __call__(self, account_id, owner_id):
        self.calls.append((account_id, owner_id))
        self.ran.set()
        if self.fail:
            raise RuntimeError("sync blew up")


class StepSleep:
    """Lets the loop run a fixed number of iterations, then blocks forever."""

    def __init__(self, steps: int):
        self.steps = steps
        self.requested: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.requested.append(seconds)
        if len(self.requested) > self.steps:
            await asyncio.Event().wait()


async def test_scheduler_runs_sync_after_interval():
    recorder = Recorder()
    sleep = StepSleep(steps=1)
    scheduler = SyncScheduler(recorder, sleep=sleep)
    account_id = uuid4()

    scheduler.schedule(account_id, 7, 15)
    await asyncio.wait_for(recorder.ran.wait(), timeout=1)
    await scheduler.shutdown()

    assert recorder.calls == [(account_id, 7)]
    assert sleep.requested[0] == 15 * 60


async def test_scheduler_keeps_running_after_failure():
    recorder = Recorder(fail=True)
    sleep = StepSleep(steps=2)
    scheduler = SyncScheduler(recorder, sleep=sleep)

    scheduler.schedule(uuid4(), 1, 1)
    for _ in range(100):
        if len(recorder.calls) == 2:
            break
        await asyncio.sleep(0)
    await scheduler.shutdown()

    assert len(recorder.calls) == 2


async def test_rescheduling_replaces_timer():
    scheduler = SyncScheduler(Recorder(), sleep=StepSleep(steps=0))
    account_id = uuid4()

    scheduler.schedule(account_id, 1, 5)
    scheduler.schedule(account_id, 1, 10)

    assert scheduler.scheduled_accounts() == [account_id]
    assert scheduler.cancel(account_id) is True
    assert scheduler.cancel(account_id) is False
    await scheduler.shutdown()


@pytest.mark.parametrize("interval", [0, -5, 1.5])
async def test_invalid_interval_rejected(interval):
    scheduler = SyncScheduler(Recorder())
    with pytest.raises(InputValidationError):
        scheduler.schedule(uuid4(), 1, interval)


async def test_shutdown_waits_for_in_flight_sync():
    gate = asyncio.Event()
    finished: list[bool] = []

    async def slow_sync(account_id, owner_id):
        await gate.wait()
        finished.append(True)

    scheduler = SyncScheduler(slow_sync, sleep=StepSleep(steps=1))
    scheduler.schedule(uuid4(), 1, 1)
    for _ in range(100):
        if scheduler._in_flight:
            break
        await asyncio.sleep(0)

    stopping = asyncio.create_task(scheduler.shutdown())
    await asyncio.sleep(0.01)
    assert not stopping.done()

    gate.set()
    await asyncio.wait_for(stopping, timeout=1)
    assert finished == [True]
