"""Game Processor — reconciles raw external games into catalog, mapping and copy records.

The single batch implementation shared by pull syncs and push imports.

Invariants:
    - Games are processed sequentially: a title created for one entry must be
      visible to the next entry of the same run so editions merge
    - Smart sync: a game that already has a DigitalCopyItem only refreshes its
      snapshot and the copy's volatile fields; catalog and mapping are untouched
    - One failure boundary per game: an error is logged and the batch continues
    - Title creation never fails on player-profile data: raw -> clamped -> safe default,
      three attempts and no more
    - An IGNORED mapping suppresses copy creation, never the snapshot upsert

Design Decisions:
    - Titles are merged on the normalized base name (edition stripped), releases
      on (title, platform, edition)
    - Existing titles are reused as-is: their profile is only changed by metadata apply
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from gamesync.core.descriptions import normalize_description
from gamesync.core.domain_types import (
    DEFAULT_MULTIPLAYER_MAX_PLAYERS, DEFAULT_PLATFORM, GameType, MappingStatus,
    PROVIDER_PLATFORM_DEFAULTS,
)
from gamesync.core.errors import PlayerProfileValidationError
from gamesync.core.game_names import extract_edition, normalize_game_title
from gamesync.core.player_profile import (
    clamp_player_profile, profile_fields, profile_for_new_title, safe_default_profile,
)
from gamesync.core.records import BatchStats, PlayerProfile, RawExternalGame
from gamesync.core.repository_protocols import (
    CatalogReleaseLike, CatalogRepository, CatalogTitleLike, DigitalCopyLike,
    LibraryRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolvedGame:
    title: CatalogTitleLike
    release: CatalogReleaseLike
    title_created: bool
    release_created: bool


class GameProcessor:
    def __init__(
        self,
        catalog: CatalogRepository,
        library: LibraryRepository,
        *,
        default_multiplayer_max: int = DEFAULT_MULTIPLAYER_MAX_PLAYERS,
        max_description_length: int = 250,
    ):
        self._catalog = catalog
        self._library = library
        self._default_multiplayer_max = default_multiplayer_max
        self._max_description_length = max_description_length

    async def process_game_batch(
        self,
        account_id: UUID,
        provider: str,
        games: list[RawExternalGame],
        owner_id: int,
        is_aggregator: bool = False,
    ) -> BatchStats:
        stats = BatchStats(entries_processed=len(games))
        default_platform = PROVIDER_PLATFORM_DEFAULTS.get(provider.lower(), DEFAULT_PLATFORM)

        existing = await self._library.get_copies_by_external_ids(
            account_id, [g.external_game_id for g in games],
        )
        logger.info(
            f"Smart sync: {len(existing)} games already have copies, "
            f"{len(games) - len(existing)} need full processing",
            extra={"account_id": account_id, "provider_id": provider},
        )

        for game in games:
            try:
                copy = existing.get(game.external_game_id)
                if copy is not None:
                    await self._refresh_existing(account_id, game, copy)
                    stats.entries_updated += 1
                    continue
                await self._process_new(
                    account_id, provider, game, owner_id, is_aggregator,
                    game.platform or default_platform, stats,
                )
            except Exception:
                logger.error(
                    f"Failed to process game '{game.name}'",
                    exc_info=True,
                    extra={
                        "account_id": account_id,
                        "provider_id": provider,
                        "external_game_id": game.external_game_id,
                    },
                )
        return stats

    async def _refresh_existing(
        self, account_id: UUID, game: RawExternalGame, copy: DigitalCopyLike,
    ) -> None:
        await self._library.upsert_snapshot(
            account_id, game.external_game_id, _snapshot_fields(game),
        )
        await self._library.update_copy(copy.id, {
            "playtime_minutes": game.playtime_minutes,
            "is_installed": game.is_installed,
            "last_played_at": game.last_played_at,
            "store_url": game.store_url,
        })

    async def _process_new(
        self, account_id: UUID, provider: str, game: RawExternalGame,
        owner_id: int, is_aggregator: bool, platform: str, stats: BatchStats,
    ) -> None:
        seen_before = await self._library.get_snapshot(account_id, game.external_game_id)
        await self._library.upsert_snapshot(
            account_id, game.external_game_id, _snapshot_fields(game),
        )
        if seen_before is None:
            stats.entries_added += 1
        else:
            stats.entries_updated += 1

        mapping = await self._library.get_mapping(provider, game.external_game_id, owner_id)
        if mapping is None or mapping.status == MappingStatus.PENDING:
            resolved = await self.resolve_title_and_release(game, platform, owner_id)
            if resolved.title_created:
                stats.titles_created += 1
            if resolved.release_created:
                stats.releases_created += 1
            links = {
                "title_id": resolved.title.id,
                "release_id": resolved.release.id,
                "status": MappingStatus.MAPPED.value,
            }
            if mapping is None:
                mapping = await self._library.create_mapping({
                    "provider": provider,
                    "external_game_id": game.external_game_id,
                    "external_game_name": game.name,
                    "owner_id": owner_id,
                    **links,
                })
            else:
                mapping = await self._library.update_mapping(mapping.id, links)

        if mapping.status == MappingStatus.IGNORED or mapping.release_id is None:
            return

        await self._library.create_copy({
            "owner_id": owner_id,
            "account_id": account_id,
            "external_game_id": game.external_game_id,
            "release_id": mapping.release_id,
            "name": game.name,
            "playtime_minutes": game.playtime_minutes,
            "is_installed": game.is_installed,
            "last_played_at": game.last_played_at,
            "store_url": game.store_url,
            "needs_review": is_aggregator and not game.original_provider_game_id,
            "aggregator_provider_id": provider if is_aggregator else None,
            "aggregator_account_id": account_id if is_aggregator else None,
            "aggregator_external_game_id": game.external_game_id if is_aggregator else None,
            "original_provider_plugin_id": game.original_provider_plugin_id,
            "original_provider_name": game.original_provider_name,
            "original_provider_game_id": game.original_provider_game_id,
            "original_provider_normalized_id": game.original_provider_normalized_id,
        })
        stats.copies_created += 1

    async def resolve_title_and_release(
        self, game: RawExternalGame, platform: str, owner_id: int,
    ) -> ResolvedGame:
        """Get or create the title (by normalized base name) and the release for a game."""
        base_name, edition = extract_edition(game.name)
        title = await self._catalog.find_title_by_normalized_name(
            normalize_game_title(base_name),
        )
        title_created = title is None
        if title is None:
            title = await self._create_title_with_fallback(game, base_name, owner_id)

        release = await self._catalog.find_release(title.id, platform, edition)
        release_created = release is None
        if release is None:
            release = await self._catalog.create_release({
                "title_id": title.id,
                "platform": platform,
                "edition": edition,
                "release_date": game.release_date,
            })

        logger.debug(
            f"'{game.name}' -> title '{title.name}' "
            f"({'new' if title_created else 'existing'}), edition {edition!r}",
            extra={"external_game_id": game.external_game_id},
        )
        return ResolvedGame(title, release, title_created, release_created)

    async def _create_title_with_fallback(
        self, game: RawExternalGame, base_name: str, owner_id: int,
    ) -> CatalogTitleLike:
        profile = profile_for_new_title(game.player_info, self._default_multiplayer_max)
        try:
            return await self._create_title(game, base_name, owner_id, profile)
        except PlayerProfileValidationError as e:
            logger.warning(
                f"Player profile rejected for '{game.name}': {e.message}. Clamping values.",
                extra={"external_game_id": game.external_game_id},
            )
        try:
            return await self._create_title(
                game, base_name, owner_id, clamp_player_profile(profile),
            )
        except PlayerProfileValidationError as e:
            logger.warning(
                f"Clamped profile rejected for '{game.name}': {e.message}. Using safe defaults.",
                extra={"external_game_id": game.external_game_id},
            )
        return await self._create_title(
            game, base_name, owner_id, safe_default_profile(),
        )

    async def _create_title(
        self, game: RawExternalGame, base_name: str, owner_id: int,
        profile: PlayerProfile,
    ) -> CatalogTitleLike:
        fields: dict[str, Any] = {
            "name": base_name,
            "normalized_name": normalize_game_title(base_name),
            "game_type": GameType.VIDEO_GAME.value,
            "description": (
                normalize_description(game.description, self._max_description_length) or None
            ),
            "cover_image_url": game.cover_image_url,
            "owner_id": owner_id,
            **profile_fields(profile),
        }
        return await self._catalog.create_title(fields)


def _snapshot_fields(game: RawExternalGame) -> dict[str, Any]:
    return {
        "external_game_name": game.name,
        "playtime_minutes": game.playtime_minutes,
        "is_installed": game.is_installed,
        "last_played_at": game.last_played_at,
        "raw_payload": game.raw_payload,
    }
