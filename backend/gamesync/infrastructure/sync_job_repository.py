"""Sync Job Repository — SyncJob persistence with state-machine enforcement.

Invariants:
    - A status change is checked against core/sync_job_state.py before it is written
    - started_at is stamped on RUNNING, finished_at on any terminal state
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select

from gamesync.core.domain_types import SyncJobStatus
from gamesync.core.errors import ResourceNotFoundError
from gamesync.core.sync_job_state import ensure_transition, is_terminal
from gamesync.infrastructure.database import DatabaseSessionManager
from gamesync.models.sync_job import SyncJob


class SqlSyncJobRepository:
    """SyncJobRepository over a DatabaseSessionManager."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(
        self, account_id: UUID, job_type: str, parent_job_id: UUID | None = None,
    ) -> SyncJob:
        async with self._db.session() as session:
            job = SyncJob(
                account_id=account_id,
                job_type=job_type,
                status=SyncJobStatus.PENDING.value,
                parent_job_id=parent_job_id,
            )
            session.add(job)
            await session.commit()
            await session.refresh(job)
            return job

    async def get(self, job_id: UUID) -> SyncJob | None:
        async with self._db.session() as session:
            return await session.get(SyncJob, job_id)

    async def update(self, job_id: UUID, fields: dict[str, Any]) -> SyncJob:
        async with self._db.session() as session:
            job = await session.get(SyncJob, job_id)
            if job is None:
                raise ResourceNotFoundError("SyncJob", str(job_id))
            values = dict(fields)
            target = values.get("status")
            if target is not None and target != job.status:
                ensure_transition(job.status, target)
                now = datetime.now(timezone.utc)
                if target == SyncJobStatus.RUNNING:
                    values.setdefault("started_at", now)
                elif is_terminal(target):
                    values.setdefault("finished_at", now)
                values["status"] = SyncJobStatus(target).value
            for key, value in values.items():
                setattr(job, key, value)
            await session.commit()
            await session.refresh(job)
            return job

    async def get_latest_for_account(self, account_id: UUID) -> SyncJob | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(SyncJob)
                .where(SyncJob.account_id == account_id)
                .order_by(SyncJob.created_at.desc())
                .limit(1),
            )
            return result.scalar_one_or_none()

    async def list_by_status(self, status: str) -> list[SyncJob]:
        async with self._db.session() as session:
            result = await session.execute(
                select(SyncJob).where(SyncJob.status == SyncJobStatus(status).value),
            )
            return list(result.scalars().all())
