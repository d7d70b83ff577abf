"""Metadata Pipeline — rate-limited, fallback-chained fetch/search/enrich/apply engine.

Invariants:
    - Every provider call waits out the provider's request_delay_ms first
      (ProviderRuntimeState.wait_turn), then resets its error counter on success
    - Provider failures never propagate: they are logged, routed through
      _handle_provider_error, and the caller moves to the next candidate
    - A rate-limited provider is skipped, never retried
    - Batch phases check the elapsed budget before each unit of work and stop early
    - Player-count enrichment only runs when multiplayer is indicated without counts

Design Decisions:
    - Runtime state injected: tests construct isolated pipelines, and concurrent
      background enrichments share one state object guarded by its lock
    - Registration order of the registry is the fallback order
    - apply_to_title persists through CatalogRepository.update_title, which
      validates the profile; compute_title_updates has already clamped it
"""

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from gamesync.core.domain_types import GameType
from gamesync.core.errors import MetadataRateLimitError, PlayerProfileValidationError
from gamesync.core.player_profile import (
    PROFILE_FIELDS, merge_player_counts, needs_player_count_enrichment,
)
from gamesync.core.provider_contracts import MetadataProvider
from gamesync.core.records import (
    FetchedMetadata, MetadataFetchResult, MetadataSearchResult, RawExternalGame,
)
from gamesync.core.repository_protocols import CatalogRepository, CatalogTitleLike
from gamesync.core.search_ranking import rank_search_results
from gamesync.core.title_updates import compute_title_updates
from gamesync.services.metadata_provider_registry import MetadataProviderRegistry
from gamesync.services.provider_runtime_state import ProviderRuntimeState

logger = logging.getLogger(__name__)

_RATE_LIMIT_HINT = re.compile(r"429|rate|too many", re.I)


def looks_rate_limited(error: Exception) -> bool:
    """Heuristic for providers that signal throttling only in the error text."""
    return bool(_RATE_LIMIT_HINT.search(str(error)))


class MetadataPipeline:
    def __init__(
        self,
        registry: MetadataProviderRegistry,
        state: ProviderRuntimeState,
        catalog: CatalogRepository,
        *,
        batch_timeout_seconds: float = 300,
        search_result_limit: int = 50,
        per_provider_search_limit: int = 10,
        min_description_length: int = 50,
        max_description_length: int = 250,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry
        self.state = state
        self._catalog = catalog
        self._batch_timeout_seconds = batch_timeout_seconds
        self._search_result_limit = search_result_limit
        self._per_provider_search_limit = per_provider_search_limit
        self._min_description_length = min_description_length
        self._max_description_length = max_description_length
        self._clock = clock
        self._sleep = sleep

    # ─── Single provider calls ───────────────────────────────────

    async def search(
        self, provider: MetadataProvider, name: str, limit: int = 5,
    ) -> list[MetadataSearchResult]:
        pid = provider.manifest.id
        if not provider.capabilities.supports_search or self.state.is_rate_limited(pid):
            return []
        try:
            await self.state.wait_turn(pid, provider.rate_limit.request_delay_ms)
            results = await provider.search_games(name, limit)
        except Exception as e:
            logger.warning(f"Search on {pid} failed: {e}", extra={"provider_id": pid})
            await self._handle_provider_error(provider, e)
            return []
        await self.state.record_success(pid)
        return results

    async def fetch(
        self, provider: MetadataProvider, external_id: str,
    ) -> FetchedMetadata | None:
        pid = provider.manifest.id
        if self.state.is_rate_limited(pid):
            return None
        try:
            await self.state.wait_turn(pid, provider.rate_limit.request_delay_ms)
            metadata = await provider.get_game_metadata(external_id)
        except Exception as e:
            logger.warning(
                f"Fetch from {pid} failed: {e}",
                extra={"provider_id": pid, "external_game_id": external_id},
            )
            await self._handle_provider_error(provider, e)
            return None
        await self.state.record_success(pid)
        return metadata

    async def _handle_provider_error(
        self, provider: MetadataProvider, error: Exception,
    ) -> None:
        pid = provider.manifest.id
        if isinstance(error, MetadataRateLimitError) or looks_rate_limited(error):
            await self.state.mark_rate_limited(pid)
            logger.warning(
                f"Provider {pid} marked as rate limited",
                extra={"provider_id": pid},
            )
            return
        tripped = await self.state.record_error(
            pid, provider.rate_limit.max_consecutive_errors,
        )
        if tripped:
            logger.warning(
                f"Provider {pid} reached {provider.rate_limit.max_consecutive_errors} "
                "consecutive errors, marked as rate limited",
                extra={"provider_id": pid},
            )

    # ─── Composed operations ─────────────────────────────────────

    async def enrich_player_counts(
        self, name: str, metadata: FetchedMetadata,
    ) -> FetchedMetadata:
        """Fill missing multiplayer counts from providers with accurate counts."""
        if not needs_player_count_enrichment(metadata.player_info):
            return metadata
        for provider in self.registry.get_with_accurate_player_counts():
            pid = provider.manifest.id
            if pid == metadata.provider_id or self.state.is_rate_limited(pid):
                continue
            results = await self.search(provider, name, 1)
            if not results:
                continue
            counts = await self.fetch(provider, results[0].external_id)
            if counts is None or counts.player_info is None:
                continue
            logger.info(
                f"Enriched '{name}' with player counts from {provider.manifest.name}",
                extra={"provider_id": pid},
            )
            return replace(
                metadata,
                player_info=merge_player_counts(metadata.player_info, counts.player_info),
            )
        return metadata

    async def process_one_game(
        self,
        *,
        name: str | None = None,
        provider_id: str | None = None,
        external_id: str | None = None,
        game_type: str | GameType | None = None,
    ) -> MetadataFetchResult:
        """Canonical single-game lookup: direct fetch, provider search, or full fallback."""
        metadata: FetchedMetadata | None = None
        source: str | None = None

        if provider_id:
            provider = self.registry.get_by_id(provider_id)
            if provider is None or self.state.is_rate_limited(provider_id):
                return MetadataFetchResult(metadata=None)
            if external_id:
                metadata = await self.fetch(provider, external_id)
            elif name:
                results = await self.search(provider, name, 1)
                if results:
                    metadata = await self.fetch(provider, results[0].external_id)
            source = provider_id
        elif name:
            for provider in self._candidates(game_type):
                pid = provider.manifest.id
                if self.state.is_rate_limited(pid):
                    continue
                results = await self.search(provider, name, 1)
                if not results:
                    continue
                metadata = await self.fetch(provider, results[0].external_id)
                if metadata is not None:
                    source = pid
                    break
                logger.warning(
                    f"No metadata from {pid} for '{name}', trying next provider",
                    extra={"provider_id": pid},
                )

        if metadata is None:
            return MetadataFetchResult(metadata=None)
        enriched = await self.enrich_player_counts(name or metadata.name, metadata)
        return MetadataFetchResult(
            metadata=enriched, provider_id=source, enriched=enriched is not metadata,
        )

    async def process_game_batch(
        self, games: list[RawExternalGame], primary_provider_id: str,
    ) -> dict[str, FetchedMetadata]:
        """Three phases under one time budget; keyed by the games' external ids."""
        timeout = self._batch_timeout_seconds or len(games) * 1.0
        start = self._clock()
        found: dict[str, FetchedMetadata] = {}

        def out_of_time(phase: int) -> bool:
            if self._clock() - start >= timeout:
                logger.warning(f"Metadata batch timeout reached in phase {phase}")
                return True
            return False

        primary = self.registry.get_by_id(primary_provider_id)
        if primary is not None and not self.state.is_rate_limited(primary_provider_id):
            await self._primary_phase(primary, games, found, out_of_time)

        missing = [g for g in games if g.external_game_id not in found]
        if missing and not out_of_time(2):
            fallbacks = [
                p for p in self.registry.get_with_search()
                if p.manifest.id != primary_provider_id
            ]
            for game in missing:
                if out_of_time(2):
                    break
                metadata = await self._search_fallbacks(fallbacks, game.name)
                if metadata is not None:
                    found[game.external_game_id] = replace(
                        metadata, external_id=game.external_game_id,
                    )

        needing_counts = [
            g for g in games
            if g.external_game_id in found
            and needs_player_count_enrichment(found[g.external_game_id].player_info)
        ]
        if needing_counts and not out_of_time(3):
            for game in needing_counts:
                if out_of_time(3):
                    break
                found[game.external_game_id] = await self.enrich_player_counts(
                    game.name, found[game.external_game_id],
                )

        logger.info(
            f"Metadata batch complete: {len(found)}/{len(games)} games have metadata",
            extra={"provider_id": primary_provider_id},
        )
        return found

    async def _primary_phase(
        self, primary: MetadataProvider, games: list[RawExternalGame],
        found: dict[str, FetchedMetadata], out_of_time: Callable[[int], bool],
    ) -> None:
        config = primary.rate_limit
        batch_size = max(config.max_batch_size, 1)
        capped = games[: config.max_games_per_sync] if config.max_games_per_sync else games
        for offset in range(0, len(capped), batch_size):
            if offset and config.batch_delay_ms:
                await self._sleep(config.batch_delay_ms / 1000)
            for game in capped[offset:offset + batch_size]:
                if out_of_time(1):
                    return
                metadata = await self.fetch(primary, game.external_game_id)
                if metadata is not None:
                    found[game.external_game_id] = metadata

    async def _search_fallbacks(
        self, providers: list[MetadataProvider], name: str,
    ) -> FetchedMetadata | None:
        for provider in providers:
            if self.state.is_rate_limited(provider.manifest.id):
                continue
            results = await self.search(provider, name, 1)
            if not results:
                continue
            metadata = await self.fetch(provider, results[0].external_id)
            if metadata is not None:
                return metadata
        return None

    async def search_options(
        self, name: str, game_type: str | GameType | None = None,
    ) -> list[MetadataSearchResult]:
        """All candidate matches across providers, ranked for presentation."""
        collected: list[MetadataSearchResult] = []
        for provider in self._candidates(game_type):
            collected.extend(
                await self.search(provider, name, self._per_provider_search_limit),
            )
        return rank_search_results(collected, name, self._search_result_limit)

    async def apply_to_title(
        self, title: CatalogTitleLike, metadata: FetchedMetadata,
        force_update: bool = False,
    ) -> tuple[CatalogTitleLike, list[str]]:
        """Persist the fields this metadata may change. Returns (title, fields updated)."""
        updates = compute_title_updates(
            title, metadata,
            force_update=force_update,
            min_description_length=self._min_description_length,
            max_description_length=self._max_description_length,
        )
        if not updates:
            return title, []
        try:
            updated = await self._catalog.update_title(title.id, updates)
        except PlayerProfileValidationError as e:
            logger.warning(
                f"Player profile rejected for '{title.name}', keeping current counts: {e.message}",
                extra={"provider_id": metadata.provider_id},
            )
            updates = _without_profile(updates)
            if not updates:
                return title, []
            updated = await self._catalog.update_title(title.id, updates)
        return updated, list(updates)

    def _candidates(self, game_type: str | GameType | None) -> list[MetadataProvider]:
        if game_type:
            return [
                p for p in self.registry.get_by_game_type(game_type)
                if p.capabilities.supports_search
            ]
        return self.registry.get_with_search()


def _without_profile(updates: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in updates.items() if k not in PROFILE_FIELDS}
