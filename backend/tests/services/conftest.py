"""Service test fixtures — in-memory database, repositories and wired services.

Invariants:
    - Every test gets a fresh in-memory SQLite database shared across sessions (StaticPool)
    - Repositories go through the real DatabaseSessionManager, not a mocked session
    - The wired service graph runs over an httpx.MockTransport: no test touches the network

Design Decisions:
    - SQLite in-memory: fast, no external dependency; PostgreSQL-only features
      are not exercised by the sync core
    - Cheap argon2 parameters: hashing stays real but costs milliseconds
"""

import httpx
import pytest
from argon2 import PasswordHasher
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from gamesync.config import Settings
from gamesync.infrastructure.account_repository import (
    SqlAccountRepository, SqlDeviceRepository,
)
from gamesync.infrastructure.catalog_repository import SqlCatalogRepository
from gamesync.infrastructure.database import DatabaseSessionManager
from gamesync.infrastructure.library_repository import SqlLibraryRepository
from gamesync.infrastructure.playnite_connector import PlayniteConnector
from gamesync.infrastructure.sync_job_repository import SqlSyncJobRepository
from gamesync.services.background_enrichment import BackgroundEnrichmentExecutor
from gamesync.services.connector_registry import ConnectorRegistry
from gamesync.services.game_processor import GameProcessor
from gamesync.services.metadata_pipeline import MetadataPipeline
from gamesync.services.metadata_provider_registry import MetadataProviderRegistry
from gamesync.services.provider_runtime_state import ProviderRuntimeState
from gamesync.services.sync_orchestrator import SyncOrchestrator
from gamesync.services.wiring import build_sync_services

from tests.services.fakes import OWNER_ID, FakeSleep


@pytest.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    manager = DatabaseSessionManager.from_engine(engine)
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
def catalog(db):
    return SqlCatalogRepository(db)


@pytest.fixture
def library(db):
    return SqlLibraryRepository(db)


@pytest.fixture
def jobs(db):
    return SqlSyncJobRepository(db)


@pytest.fixture
def accounts(db):
    return SqlAccountRepository(db)


@pytest.fixture
def devices(db):
    return SqlDeviceRepository(db)


@pytest.fixture
def hasher():
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
async def steam_account(accounts):
    return await accounts.create({
        "owner_id": OWNER_ID, "provider": "steam",
        "external_user_id": "76561197960287930",
    })


@pytest.fixture
async def playnite_account(accounts):
    return await accounts.create({"owner_id": OWNER_ID, "provider": "playnite"})


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def provider_registry():
    return MetadataProviderRegistry()


@pytest.fixture
def provider_state(fake_sleep):
    return ProviderRuntimeState(sleep=fake_sleep)


@pytest.fixture
def pipeline(provider_registry, provider_state, catalog, fake_sleep):
    return MetadataPipeline(
        provider_registry, provider_state, catalog, sleep=fake_sleep,
    )


@pytest.fixture
def processor(catalog, library):
    return GameProcessor(catalog, library)


@pytest.fixture
def connectors(devices, hasher):
    registry = ConnectorRegistry()
    registry.register(PlayniteConnector(devices, hasher))
    return registry


@pytest.fixture
async def executor(jobs):
    executor = BackgroundEnrichmentExecutor(jobs, max_concurrency=1, queue_size=10)
    yield executor
    await executor.shutdown()


@pytest.fixture
async def orchestrator(
    accounts, jobs, library, catalog, devices, connectors, processor, pipeline, executor,
):
    orchestrator = SyncOrchestrator(
        accounts=accounts, jobs=jobs, library=library, catalog=catalog,
        devices=devices, connectors=connectors, processor=processor,
        pipeline=pipeline, executor=executor,
    )
    yield orchestrator
    await orchestrator.scheduler.shutdown()


@pytest.fixture
async def services(db, hasher):
    """Production wiring over the test database, with a cheap hasher for devices."""
    services = build_sync_services(
        Settings(steam_web_api_key=None, rawg_api_key=None),
        db,
        transport=httpx.MockTransport(lambda request: httpx.Response(404)),
    )
    playnite = services.connectors.get_by_id("playnite")
    playnite._hasher = hasher
    yield services
    await services.aclose()


@pytest.fixture
async def client(services):
    from gamesync.main import create_app

    app = create_app()
    app.state.services = services
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
