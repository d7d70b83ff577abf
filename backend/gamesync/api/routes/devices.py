"""Device Routes — register, list, revoke and delete push-agent devices.

Every operation goes through the push connector of the device's account.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from gamesync.api.dependencies import get_orchestrator
from gamesync.schemas.devices import (
    DeviceCreate, DeviceRegisteredResponse, DeviceResponse,
)
from gamesync.services.sync_orchestrator import SyncOrchestrator

router = APIRouter(prefix="/api/v1/devices", tags=["devices"])


@router.post(
    "", response_model=DeviceRegisteredResponse, status_code=status.HTTP_201_CREATED,
)
async def register_device(
    body: DeviceCreate, orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """Register a device. The token is returned here and never again."""
    _, connector = await orchestrator.resolve_push_connector(body.account_id, body.owner_id)
    device, token = await connector.register_device(
        body.owner_id, body.account_id, body.device_name,
    )
    return DeviceRegisteredResponse(
        device=DeviceResponse.model_validate(device), token=token,
    )


@router.get("", response_model=list[DeviceResponse])
async def list_devices(
    account_id: UUID = Query(...),
    owner_id: int = Query(...),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    _, connector = await orchestrator.resolve_push_connector(account_id, owner_id)
    devices = await connector.list_devices(owner_id, account_id)
    return [DeviceResponse.model_validate(d) for d in devices]


@router.post("/{device_id}/revoke", response_model=DeviceResponse)
async def revoke_device(
    device_id: UUID,
    account_id: UUID = Query(...),
    owner_id: int = Query(...),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    _, connector = await orchestrator.resolve_push_connector(account_id, owner_id)
    return DeviceResponse.model_validate(
        await connector.revoke_device(device_id, owner_id),
    )


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    device_id: UUID,
    account_id: UUID = Query(...),
    owner_id: int = Query(...),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    _, connector = await orchestrator.resolve_push_connector(account_id, owner_id)
    await connector.delete_device(device_id, owner_id)
