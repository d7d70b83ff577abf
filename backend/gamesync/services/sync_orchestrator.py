"""Sync Orchestrator — job lifecycle, pull syncs, push imports, scheduling and recovery.

Invariants:
    - Every sync or push import attempt that passes account validation has a SyncJob;
      connector failures end it FAILED with a message, never as a raised error
    - Missing accounts and owner mismatches are raised immediately (no job is created)
    - Push imports return after the fast path; enrichment runs against a second job
      (parent_job_id = the import job) on the background executor
    - Soft removal clears the install flag only; snapshots and copies are never deleted
    - recover_stale_sync_jobs() fails every job a previous process left RUNNING

Design Decisions:
    - Concurrent syncs for the same account are not prevented here; the caller owns that
    - Scheduler and executor are injected so tests observe them without timers leaking
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from gamesync.core.domain_types import SyncJobStatus, SyncJobType
from gamesync.core.errors import (
    AccessDeniedError, DeviceTokenInvalidError, EnrichmentQueueFullError, ErrorContext,
    PushImportRejectedError, ResourceNotFoundError,
)
from gamesync.core.provider_contracts import (
    Connector, PushConnector, is_push_connector,
)
from gamesync.core.records import (
    BatchStats, ConnectorCredentials, ImportCounts, PushImportSummary,
    RawExternalGame, SyncStatus,
)
from gamesync.core.repository_protocols import (
    AccountRepository, CatalogRepository, DeviceLike, DeviceRepository,
    ExternalAccountLike, LibraryRepository, SyncJobLike, SyncJobRepository,
)
from gamesync.core.sync_job_state import RECOVERY_MESSAGE
from gamesync.services.background_enrichment import BackgroundEnrichmentExecutor
from gamesync.services.connector_registry import ConnectorRegistry
from gamesync.services.game_processor import GameProcessor
from gamesync.services.metadata_pipeline import MetadataPipeline
from gamesync.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)


@dataclass
class SyncTriggerResult:
    job_id: UUID
    status: SyncJobStatus
    error: str | None = None
    stats: BatchStats | None = None
    enrichment_job_id: UUID | None = None


class SyncOrchestrator:
    def __init__(
        self,
        *,
        accounts: AccountRepository,
        jobs: SyncJobRepository,
        library: LibraryRepository,
        catalog: CatalogRepository,
        devices: DeviceRepository,
        connectors: ConnectorRegistry,
        processor: GameProcessor,
        pipeline: MetadataPipeline,
        executor: BackgroundEnrichmentExecutor,
        scheduler: SyncScheduler | None = None,
        enrich_after_pull_sync: bool = True,
    ):
        self._accounts = accounts
        self._jobs = jobs
        self._library = library
        self._catalog = catalog
        self._devices = devices
        self._connectors = connectors
        self._processor = processor
        self._pipeline = pipeline
        self._executor = executor
        self.scheduler = scheduler or SyncScheduler(self.trigger_sync)
        self._enrich_after_pull_sync = enrich_after_pull_sync

    # ─── Pull sync ───────────────────────────────────────────────

    async def trigger_sync(self, account_id: UUID, owner_id: int) -> SyncTriggerResult:
        account = await self._owned_account(account_id, owner_id)
        job = await self._jobs.create(account_id, SyncJobType.LIBRARY_SYNC.value)
        log_extra = {"job_id": job.id, "account_id": account_id}

        try:
            connector = self._connectors.get_by_provider(account.provider)
            if connector is None:
                return await self._fail(job.id, f"No connector for provider: {account.provider}")

            await self._jobs.update(job.id, {"status": SyncJobStatus.RUNNING})
            logger.info(f"Sync started for {account.provider}", extra=log_extra)

            if not account.external_user_id:
                return await self._fail(
                    job.id, "External user ID not configured for this account",
                )
            result = await connector.sync_library(ConnectorCredentials(
                external_user_id=account.external_user_id, token_ref=account.token_ref,
            ))
            if not result.success:
                message = result.error or "Sync failed"
                if result.error_code:
                    message = f"{result.error_code}: {message}"
                return await self._fail(job.id, message)

            stats = await self._processor.process_game_batch(
                account_id, account.provider, result.games, owner_id,
                connector.manifest.is_aggregator,
            )
            await self._accounts.update_last_synced(account_id, _now())
            await self._jobs.update(job.id, {
                "status": SyncJobStatus.COMPLETED,
                "entries_processed": stats.entries_processed,
                "entries_added": stats.entries_added,
                "entries_updated": stats.entries_updated,
            })
        except Exception as e:
            logger.error(f"Sync failed: {e}", exc_info=True, extra=log_extra)
            return await self._fail(job.id, str(e) or type(e).__name__)

        logger.info(
            f"Sync completed: {stats.entries_processed} processed, "
            f"{stats.copies_created} new copies",
            extra=log_extra,
        )
        enrichment_job_id = None
        if self._enrich_after_pull_sync and result.games:
            enrichment_job_id = await self._dispatch_enrichment(
                job.id, account_id, account.provider, result.games, owner_id,
            )
        return SyncTriggerResult(
            job.id, SyncJobStatus.COMPLETED, stats=stats,
            enrichment_job_id=enrichment_job_id,
        )

    async def _fail(self, job_id: UUID, message: str) -> SyncTriggerResult:
        await self._jobs.update(job_id, {
            "status": SyncJobStatus.FAILED, "error_message": message,
        })
        logger.warning(f"Sync failed: {message}", extra={"job_id": job_id})
        return SyncTriggerResult(job_id, SyncJobStatus.FAILED, error=message)

    # ─── Push import ─────────────────────────────────────────────

    async def process_push_import(
        self, device_id: UUID, account_id: UUID, owner_id: int, raw_payload: Any,
    ) -> PushImportSummary:
        imported_at = _now()
        account, connector = await self.resolve_push_connector(account_id, owner_id)
        preprocessed = await connector.preprocess_import(raw_payload)
        is_aggregator = connector.manifest.is_aggregator

        job = await self._jobs.create(account_id, SyncJobType.PUSH_IMPORT.value)
        log_extra = {"job_id": job.id, "account_id": account_id}
        await self._jobs.update(job.id, {"status": SyncJobStatus.RUNNING})
        try:
            stats = await self._processor.process_game_batch(
                account_id, account.provider, preprocessed.games, owner_id, is_aggregator,
            )
            soft_removed = await self.soft_remove_unseen(
                account_id, set(preprocessed.entitlement_keys),
            )
            await self._devices.update(device_id, {"last_import_at": imported_at})
            await self._accounts.update_last_synced(account_id, imported_at)
        except Exception as e:
            logger.error(f"Push import failed: {e}", exc_info=True, extra=log_extra)
            await self._jobs.update(job.id, {
                "status": SyncJobStatus.FAILED,
                "error_message": str(e) or type(e).__name__,
            })
            raise

        await self._jobs.update(job.id, {
            "status": SyncJobStatus.COMPLETED,
            "entries_processed": stats.entries_processed,
            "entries_added": stats.entries_added,
            "entries_updated": stats.entries_updated,
        })
        enrichment_job_id = None
        if preprocessed.games:
            enrichment_job_id = await self._dispatch_enrichment(
                job.id, account_id, account.provider, preprocessed.games, owner_id,
            )

        counts = ImportCounts(
            received=len(preprocessed.games),
            created=stats.copies_created,
            updated=stats.entries_updated,
            unchanged=max(
                0, stats.entries_processed - stats.copies_created - stats.entries_updated,
            ),
            soft_removed=soft_removed,
            needs_review=preprocessed.needs_review_count,
        )
        logger.info(
            f"Push import processed: {counts.received} received, {counts.created} created, "
            f"{counts.soft_removed} soft-removed",
            extra=log_extra,
        )
        return PushImportSummary(
            device_id=str(device_id),
            imported_at=imported_at,
            job_id=job.id,
            enrichment_job_id=enrichment_job_id,
            counts=counts,
            warnings=preprocessed.warnings,
        )

    async def resolve_push_connector(
        self, account_id: UUID, owner_id: int,
    ) -> tuple[ExternalAccountLike, PushConnector]:
        account = await self._owned_account(account_id, owner_id)
        connector: Connector | None = self._connectors.get_by_provider(account.provider)
        if connector is None:
            raise ResourceNotFoundError("Connector", account.provider)
        if not is_push_connector(connector):
            raise PushImportRejectedError(
                f"{account.provider} does not support push imports",
            )
        return account, connector

    async def authenticate_device(self, token: str | None) -> DeviceLike:
        """Resolve a push-agent token to its device across every push connector."""
        if token:
            for connector in self.push_connectors():
                device = await connector.verify_device_token(token)
                if device is not None:
                    return device
        raise DeviceTokenInvalidError()

    def push_connectors(self) -> list[PushConnector]:
        return [c for c in self._connectors.all() if is_push_connector(c)]

    async def soft_remove_unseen(self, account_id: UUID, seen_keys: set[str]) -> int:
        """Mark entries missing from this import as not installed. Returns how many changed."""
        removed = 0
        for snapshot in await self._library.list_snapshots(account_id):
            if snapshot.external_game_id in seen_keys or snapshot.is_installed is False:
                continue
            await self._library.upsert_snapshot(
                account_id, snapshot.external_game_id, {"is_installed": False},
            )
            copy = await self._library.find_copy(account_id, snapshot.external_game_id)
            if copy is not None:
                await self._library.update_copy(copy.id, {"is_installed": False})
            removed += 1
        return removed

    # ─── Background enrichment ───────────────────────────────────

    async def _dispatch_enrichment(
        self, parent_job_id: UUID, account_id: UUID, provider: str,
        games: list[RawExternalGame], owner_id: int,
    ) -> UUID:
        job = await self._jobs.create(
            account_id, SyncJobType.METADATA_ENRICHMENT.value, parent_job_id=parent_job_id,
        )

        async def work() -> dict[str, int]:
            return await self.enrich_games(provider, games, owner_id, job.id)

        try:
            self._executor.submit(job.id, work)
        except EnrichmentQueueFullError as e:
            logger.warning(e.message, extra={"job_id": job.id, "account_id": account_id})
            await self._jobs.update(job.id, {
                "status": SyncJobStatus.FAILED, "error_message": e.message,
            })
        return job.id

    async def enrich_games(
        self, provider: str, games: list[RawExternalGame], owner_id: int,
        job_id: UUID | None = None,
    ) -> dict[str, int]:
        """Fetch metadata for a batch and apply it to the mapped titles."""
        found = await self._pipeline.process_game_batch(games, provider)
        enriched: set[UUID] = set()
        for game in games:
            metadata = found.get(game.external_game_id)
            if metadata is None:
                continue
            try:
                mapping = await self._library.get_mapping(
                    provider, game.external_game_id, owner_id,
                )
                if mapping is None or mapping.title_id is None:
                    continue
                title = await self._catalog.get_title(mapping.title_id)
                if title is None:
                    logger.info(
                        f"Skipping enrichment for '{game.name}': title no longer exists",
                        extra={"job_id": job_id},
                    )
                    continue
                _, changed = await self._pipeline.apply_to_title(
                    title, metadata, force_update=False,
                )
                if changed:
                    enriched.add(title.id)
            except Exception:
                logger.error(
                    f"Failed to enrich game '{game.name}'", exc_info=True,
                    extra={"job_id": job_id, "external_game_id": game.external_game_id},
                )
        logger.info(
            f"Metadata enrichment: {len(enriched)} titles updated from {len(games)} games",
            extra={"job_id": job_id, "provider_id": provider},
        )
        return {
            "entries_processed": len(games),
            "entries_added": 0,
            "entries_updated": len(enriched),
        }

    # ─── Status, scheduling, recovery ────────────────────────────

    async def get_sync_status(self, account_id: UUID) -> SyncStatus:
        account = await self._accounts.get(account_id)
        if account is None:
            raise ResourceNotFoundError("ExternalAccount", str(account_id))
        return SyncStatus(
            account_id=str(account_id),
            last_synced_at=account.last_synced_at,
            latest_job=await self._jobs.get_latest_for_account(account_id),
            is_scheduled=self.scheduler.is_scheduled(account_id),
        )

    async def get_job(self, job_id: UUID) -> SyncJobLike:
        job = await self._jobs.get(job_id)
        if job is None:
            raise ResourceNotFoundError("SyncJob", str(job_id))
        return job

    async def schedule_sync(
        self, account_id: UUID, owner_id: int, interval_minutes: int,
    ) -> None:
        await self._owned_account(account_id, owner_id)
        self.scheduler.schedule(account_id, owner_id, interval_minutes)

    def cancel_scheduled_sync(self, account_id: UUID) -> bool:
        return self.scheduler.cancel(account_id)

    async def recover_stale_sync_jobs(self) -> int:
        """Fail jobs a previous process left RUNNING, and enrichment jobs it never started."""
        stale = await self._jobs.list_by_status(SyncJobStatus.RUNNING.value)
        stale += [
            job for job in await self._jobs.list_by_status(SyncJobStatus.PENDING.value)
            if job.job_type == SyncJobType.METADATA_ENRICHMENT
        ]
        if not stale:
            logger.info("No stale sync jobs to recover")
            return 0
        recovered = 0
        for job in stale:
            try:
                await self._jobs.update(job.id, {
                    "status": SyncJobStatus.FAILED, "error_message": RECOVERY_MESSAGE,
                })
                recovered += 1
            except Exception:
                logger.error(
                    "Failed to recover stale sync job", exc_info=True,
                    extra={"job_id": job.id},
                )
        logger.info(f"Recovered {recovered} stale sync jobs")
        return recovered

    async def _owned_account(self, account_id: UUID, owner_id: int) -> ExternalAccountLike:
        account = await self._accounts.get(account_id)
        if account is None:
            raise ResourceNotFoundError("ExternalAccount", str(account_id))
        if account.owner_id != owner_id:
            raise AccessDeniedError(ErrorContext(account_id=str(account_id)))
        return account


def _now() -> datetime:
    return datetime.now(timezone.utc)
