"""Title Updates — decides which CatalogTitle fields a piece of metadata may change.

Invariants:
    - Description replaced only when forced, absent, shorter than the minimum
      meaningful length, or equal to the title's own name
    - Cover image only fills an empty slot unless forced
    - Invalid incoming counts never overwrite a known value
    - Physical-play fields are only written for physical game types
    - The resulting profile always satisfies the title invariants (clamped)
    - Returns only fields whose value actually changes

Design Decisions:
    - Pure function returning a field dict: the pipeline persists it, tests
      assert on it without a database
"""

from dataclasses import replace
from typing import Any

from gamesync.core.descriptions import normalize_description
from gamesync.core.domain_types import GameType, PHYSICAL_GAME_TYPES
from gamesync.core.player_profile import (
    clamp_player_profile,
    find_profile_violations,
    is_valid_player_count,
    profile_fields,
    profile_of,
)
from gamesync.core.records import FetchedMetadata, PlayerInfo, PlayerProfile
from gamesync.core.repository_protocols import CatalogTitleLike


def is_physical_type(game_type: str | GameType) -> bool:
    try:
        return GameType(game_type) in PHYSICAL_GAME_TYPES
    except ValueError:
        return False


def compute_title_updates(
    title: CatalogTitleLike,
    metadata: FetchedMetadata,
    *,
    force_update: bool = False,
    min_description_length: int = 50,
    max_description_length: int = 250,
) -> dict[str, Any]:
    updates: dict[str, Any] = {}

    raw_description = metadata.short_description or metadata.description
    if raw_description:
        description = normalize_description(raw_description, max_description_length)
        current = title.description
        replaceable = (
            force_update
            or not current
            or len(current) < min_description_length
            or current == title.name
        )
        if description and replaceable and description != current:
            updates["description"] = description

    if metadata.cover_image_url and (force_update or not title.cover_image_url):
        if metadata.cover_image_url != title.cover_image_url:
            updates["cover_image_url"] = metadata.cover_image_url

    if metadata.player_info is not None:
        current_profile = profile_of(title)
        candidate = apply_player_info(
            current_profile, metadata.player_info, is_physical_type(title.game_type),
        )
        for name, value in profile_fields(candidate).items():
            if getattr(current_profile, name) != value:
                updates[name] = value
    return updates


def apply_player_info(
    profile: PlayerProfile, info: PlayerInfo, physical: bool,
) -> PlayerProfile:
    """Overlay known incoming values on a profile, then repair it.

    If the repaired profile is still invalid the original profile is kept.
    """
    changes: dict[str, Any] = {}
    if is_valid_player_count(info.overall_min_players):
        changes["overall_min_players"] = int(info.overall_min_players)
    if is_valid_player_count(info.overall_max_players):
        changes["overall_max_players"] = int(info.overall_max_players)

    modes = ["online", "local"] + (["physical"] if physical else [])
    for mode in modes:
        flag = getattr(info, f"supports_{mode}")
        if flag is not None:
            changes[f"supports_{mode}"] = flag
            if not flag:
                changes[f"{mode}_min_players"] = None
                changes[f"{mode}_max_players"] = None
        supported = changes.get(f"supports_{mode}", getattr(profile, f"supports_{mode}"))
        if not supported:
            continue
        for bound in ("min", "max"):
            value = getattr(info, f"{mode}_{bound}_players")
            if is_valid_player_count(value):
                changes[f"{mode}_{bound}_players"] = int(value)

    if not physical:
        changes["supports_physical"] = False
        changes["physical_min_players"] = None
        changes["physical_max_players"] = None

    candidate = clamp_player_profile(replace(profile, **changes))
    if find_profile_violations(candidate):
        return profile
    return candidate
