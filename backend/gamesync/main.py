"""GameSync API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map GameSyncError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Startup: logging, database, service graph, then stale-job recovery, in that order
    - Shutdown: scheduler and enrichment workers stop before the database is disposed

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Services live on app.state so tests can swap the whole graph
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gamesync.api.error_handlers import register_error_handlers
from gamesync.api.routes import devices, health, metadata, push_import, sync
from gamesync.config import get_settings
from gamesync.infrastructure.database import init_db
from gamesync.infrastructure.observability import setup_logging
from gamesync.services.wiring import build_sync_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_create_schema:
        await db.create_schema()
    services = build_sync_services(settings, db)
    app.state.services = services
    await services.orchestrator.recover_stale_sync_jobs()
    logger.info("GameSync API started")
    yield
    logger.info("GameSync API shutting down")
    await services.aclose()
    await db.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="GameSync API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(sync.router)
    app.include_router(push_import.router)
    app.include_router(devices.router)
    app.include_router(metadata.router)
    register_error_handlers(app)
    return app


app = create_app()
