"""Service Wiring — builds the process-wide service graph from Settings.

Invariants:
    - One ProviderRuntimeState per process, shared by every pipeline call
    - Metadata provider HTTP clients never retry: the pipeline falls back instead
    - Metadata providers register in fallback order: steam, rawg, boardgamegeek
    - aclose() stops scheduler and executor before closing HTTP clients
"""

import logging
from dataclasses import dataclass, field

import httpx
from argon2 import PasswordHasher

from gamesync.config import Settings
from gamesync.infrastructure.account_repository import (
    SqlAccountRepository, SqlDeviceRepository,
)
from gamesync.infrastructure.bgg_metadata_provider import BoardGameGeekMetadataProvider
from gamesync.infrastructure.catalog_repository import SqlCatalogRepository
from gamesync.infrastructure.database import DatabaseSessionManager
from gamesync.infrastructure.http_client import ResilientHttpClient
from gamesync.infrastructure.library_repository import SqlLibraryRepository
from gamesync.infrastructure.playnite_connector import PlayniteConnector
from gamesync.infrastructure.rawg_metadata_provider import RawgMetadataProvider
from gamesync.infrastructure.steam_connector import SteamConnector
from gamesync.infrastructure.steam_metadata_provider import SteamMetadataProvider
from gamesync.infrastructure.sync_job_repository import SqlSyncJobRepository
from gamesync.services.background_enrichment import BackgroundEnrichmentExecutor
from gamesync.services.connector_registry import ConnectorRegistry
from gamesync.services.game_processor import GameProcessor
from gamesync.services.metadata_operations import MetadataOperations
from gamesync.services.metadata_pipeline import MetadataPipeline
from gamesync.services.metadata_provider_registry import MetadataProviderRegistry
from gamesync.services.provider_runtime_state import ProviderRuntimeState
from gamesync.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class SyncServices:
    """Everything the API layer reaches through app.state.services."""
    db: DatabaseSessionManager
    connectors: ConnectorRegistry
    metadata_providers: MetadataProviderRegistry
    provider_state: ProviderRuntimeState
    pipeline: MetadataPipeline
    metadata: MetadataOperations
    executor: BackgroundEnrichmentExecutor
    orchestrator: SyncOrchestrator
    http_clients: list[ResilientHttpClient] = field(default_factory=list)

    async def aclose(self) -> None:
        await self.orchestrator.scheduler.shutdown()
        await self.executor.shutdown()
        for client in self.http_clients:
            await client.aclose()


def build_sync_services(
    settings: Settings,
    db: DatabaseSessionManager,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SyncServices:
    """Wire repositories, adapters and services. transport replaces the network in tests."""
    catalog = SqlCatalogRepository(db)
    library = SqlLibraryRepository(db)
    jobs = SqlSyncJobRepository(db)
    accounts = SqlAccountRepository(db)
    devices = SqlDeviceRepository(db)

    connector_http = ResilientHttpClient(
        "steam-web-api",
        timeout_seconds=settings.http_timeout_seconds,
        max_retries=settings.http_max_retries,
        base_delay_ms=settings.http_base_delay_ms,
        max_delay_ms=settings.http_max_delay_ms,
        transport=transport,
    )
    metadata_http = ResilientHttpClient(
        "metadata",
        timeout_seconds=settings.http_timeout_seconds,
        max_retries=0,
        transport=transport,
    )

    connectors = ConnectorRegistry()
    connectors.register(SteamConnector(connector_http, settings.steam_web_api_key))
    connectors.register(PlayniteConnector(devices, PasswordHasher()))

    providers = MetadataProviderRegistry()
    providers.register(SteamMetadataProvider(metadata_http))
    providers.register(RawgMetadataProvider(metadata_http, settings.rawg_api_key))
    providers.register(BoardGameGeekMetadataProvider(metadata_http))

    state = ProviderRuntimeState()
    pipeline = MetadataPipeline(
        providers, state, catalog,
        batch_timeout_seconds=settings.metadata_enrichment_timeout_seconds,
        search_result_limit=settings.metadata_search_result_limit,
        per_provider_search_limit=settings.metadata_search_per_provider_limit,
        min_description_length=settings.min_valid_description_length,
        max_description_length=settings.max_description_length,
    )
    executor = BackgroundEnrichmentExecutor(
        jobs,
        max_concurrency=settings.enrichment_max_concurrency,
        queue_size=settings.enrichment_queue_size,
    )
    processor = GameProcessor(
        catalog, library,
        default_multiplayer_max=settings.default_multiplayer_max_players,
        max_description_length=settings.max_description_length,
    )
    orchestrator = SyncOrchestrator(
        accounts=accounts, jobs=jobs, library=library, catalog=catalog,
        devices=devices, connectors=connectors, processor=processor,
        pipeline=pipeline, executor=executor,
        enrich_after_pull_sync=settings.enrich_after_pull_sync,
    )
    metadata = MetadataOperations(
        pipeline, catalog, timeout_seconds=settings.metadata_enrichment_timeout_seconds,
    )
    logger.info(
        f"Sync services ready: {len(connectors.all())} connectors, "
        f"{len(providers.all())} metadata providers",
    )
    return SyncServices(
        db=db,
        connectors=connectors,
        metadata_providers=providers,
        provider_state=state,
        pipeline=pipeline,
        metadata=metadata,
        executor=executor,
        orchestrator=orchestrator,
        http_clients=[connector_http, metadata_http],
    )
