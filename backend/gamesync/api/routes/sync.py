"""Sync Routes — trigger, status, scheduling and job lookup.

Invariants:
    - A connector failure is a 202 with status "failed": the job record carries the error
    - Missing accounts are 404, owner mismatches 403
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from gamesync.api.dependencies import get_orchestrator
from gamesync.schemas.sync import (
    ScheduleRequest, ScheduleResponse, SyncJobResponse, SyncStatusResponse,
    SyncTriggerResponse,
)
from gamesync.services.sync_orchestrator import SyncOrchestrator

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.post(
    "/accounts/{account_id}/trigger",
    response_model=SyncTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_sync(
    account_id: UUID,
    owner_id: int = Query(...),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.trigger_sync(account_id, owner_id)
    return SyncTriggerResponse(
        job_id=result.job_id,
        status=result.status.value,
        error=result.error,
        enrichment_job_id=result.enrichment_job_id,
    )


@router.get("/accounts/{account_id}/status", response_model=SyncStatusResponse)
async def get_sync_status(
    account_id: UUID, orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    sync_status = await orchestrator.get_sync_status(account_id)
    return SyncStatusResponse(
        account_id=account_id,
        last_synced_at=sync_status.last_synced_at,
        latest_job=(
            SyncJobResponse.model_validate(sync_status.latest_job)
            if sync_status.latest_job else None
        ),
        is_scheduled=sync_status.is_scheduled,
    )


@router.put("/accounts/{account_id}/schedule", response_model=ScheduleResponse)
async def schedule_sync(
    account_id: UUID,
    body: ScheduleRequest,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.schedule_sync(account_id, body.owner_id, body.interval_minutes)
    return ScheduleResponse(account_id=account_id, is_scheduled=True)


@router.delete("/accounts/{account_id}/schedule", response_model=ScheduleResponse)
async def cancel_scheduled_sync(
    account_id: UUID, orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    orchestrator.cancel_scheduled_sync(account_id)
    return ScheduleResponse(account_id=account_id, is_scheduled=False)


@router.get("/jobs/{job_id}", response_model=SyncJobResponse)
async def get_job(
    job_id: UUID, orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    return SyncJobResponse.model_validate(await orchestrator.get_job(job_id))
