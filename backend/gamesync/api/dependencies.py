"""Route Dependencies — resolve the service graph built in the lifespan."""

from fastapi import Depends, Request

from gamesync.services.metadata_operations import MetadataOperations
from gamesync.services.sync_orchestrator import SyncOrchestrator
from gamesync.services.wiring import SyncServices


def get_services(request: Request) -> SyncServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Sync services not initialized")
    return services


def get_orchestrator(services: SyncServices = Depends(get_services)) -> SyncOrchestrator:
    return services.orchestrator


def get_metadata_operations(
    services: SyncServices = Depends(get_services),
) -> MetadataOperations:
    return services.metadata
