"""Push Import Route — receives a library pushed by a registered agent.

Invariants:
    - The Bearer token alone identifies device, account and owner
    - Returns as soon as the fast path is done; enrichment_job_id tracks the rest
"""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, Depends, Header

from gamesync.api.dependencies import get_orchestrator
from gamesync.schemas.sync import PushImportResponse
from gamesync.services.sync_orchestrator import SyncOrchestrator

router = APIRouter(prefix="/api/v1/push", tags=["push"])


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


@router.post("/import", response_model=PushImportResponse)
async def push_import(
    payload: Any = Body(...),
    authorization: str | None = Header(None),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    device = await orchestrator.authenticate_device(_bearer_token(authorization))
    summary = await orchestrator.process_push_import(
        device.id, device.account_id, device.owner_id, payload,
    )
    return PushImportResponse.model_validate(asdict(summary))
