"""Player Profile Rules — validation, clamping and merging of player-count data.

Invariants:
    - overall_min >= 1 and overall_max >= overall_min
    - A mode's min/max are non-null iff its support flag is true
    - A supported mode has 1 <= mode_min <= mode_max <= overall_max
    - Overall max is extended, never truncated, to cover a mode maximum
    - A count that is not a positive finite integer is "unknown" (None)

Design Decisions:
    - validate raises PlayerProfileValidationError listing every violation, so the
      clamp ladder in the game processor can log the full reason once
    - clamp_player_profile() always returns a profile that passes validation;
      safe_default_profile() exists for the case where even the input to clamp is unusable
"""

import math
from dataclasses import asdict, fields, replace
from typing import Any

from gamesync.core.errors import PlayerProfileValidationError
from gamesync.core.records import PlayerInfo, PlayerProfile

MODES = ("online", "local", "physical")

PROFILE_FIELDS = tuple(f.name for f in fields(PlayerProfile))


def is_valid_player_count(value: Any) -> bool:
    """Positive finite integer (3 and 3.0 are valid; 0, -1, 2.5, NaN, True are not)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        return False
    return value > 0


def sanitize_count(value: Any) -> int | None:
    return int(value) if is_valid_player_count(value) else None


# ─── Validation ──────────────────────────────────────────────────

def find_profile_violations(profile: PlayerProfile) -> list[str]:
    violations: list[str] = []
    if profile.overall_min_players is None or profile.overall_min_players < 1:
        violations.append("overall_min_players must be >= 1")
    if (
        profile.overall_max_players is None
        or profile.overall_min_players is None
        or profile.overall_max_players < profile.overall_min_players
    ):
        violations.append("overall_max_players must be >= overall_min_players")

    for mode in MODES:
        supported = getattr(profile, f"supports_{mode}")
        mode_min = getattr(profile, f"{mode}_min_players")
        mode_max = getattr(profile, f"{mode}_max_players")
        if not supported:
            if mode_min is not None or mode_max is not None:
                violations.append(f"{mode} counts set but supports_{mode} is false")
            continue
        if mode_min is None or mode_max is None:
            violations.append(f"{mode} is supported but its counts are missing")
            continue
        if mode_min < 1:
            violations.append(f"{mode}_min_players must be >= 1")
        if mode_max < mode_min:
            violations.append(f"{mode}_max_players must be >= {mode}_min_players")
        if profile.overall_max_players is not None and mode_max > profile.overall_max_players:
            violations.append(f"{mode}_max_players exceeds overall_max_players")
    return violations


def validate_player_profile(profile: PlayerProfile) -> None:
    violations = find_profile_violations(profile)
    if violations:
        raise PlayerProfileValidationError(violations)


# ─── Repair ──────────────────────────────────────────────────────

def clamp_player_profile(profile: PlayerProfile) -> PlayerProfile:
    """Repair a profile so it satisfies every invariant.

    1. A present online/local maximum raises that mode's support flag.
    2. Unsupported modes are cleared; supported modes get min >= 1 and max >= min.
    3. Overall max is extended to cover every mode maximum.
    4. Overall min is forced into [1, overall max].
    5. Supported modes with unknown max inherit the overall max.
    """
    values = asdict(profile)
    for mode in ("online", "local"):
        if is_valid_player_count(values[f"{mode}_max_players"]):
            values[f"supports_{mode}"] = True

    overall_max = sanitize_count(values["overall_max_players"]) or 1
    for mode in MODES:
        if not values[f"supports_{mode}"]:
            values[f"{mode}_min_players"] = None
            values[f"{mode}_max_players"] = None
            continue
        mode_min = sanitize_count(values[f"{mode}_min_players"]) or 1
        mode_max = sanitize_count(values[f"{mode}_max_players"])
        if mode_max is not None and mode_max < mode_min:
            mode_max = mode_min
        values[f"{mode}_min_players"] = mode_min
        values[f"{mode}_max_players"] = mode_max
        overall_max = max(overall_max, mode_min, mode_max or 0)

    values["overall_max_players"] = overall_max
    overall_min = sanitize_count(values["overall_min_players"]) or 1
    values["overall_min_players"] = min(overall_min, overall_max)

    for mode in MODES:
        if values[f"supports_{mode}"] and values[f"{mode}_max_players"] is None:
            values[f"{mode}_max_players"] = overall_max
    return PlayerProfile(**values)


def safe_default_profile() -> PlayerProfile:
    """Single-player, no mode support. Always valid."""
    return PlayerProfile()


# ─── Construction ────────────────────────────────────────────────

def has_multiplayer_support(info: PlayerInfo) -> bool:
    return bool(
        info.supports_online
        or info.supports_local
        or (info.overall_max_players is not None and info.overall_max_players > 1)
    )


def profile_for_new_title(
    info: PlayerInfo, default_multiplayer_max: int,
) -> PlayerProfile:
    """Profile a new video-game title gets from connector data, before validation.

    Values are taken as reported; the caller validates and clamps.
    """
    supports_online = bool(info.supports_online)
    supports_local = bool(info.supports_local)
    fallback_max = default_multiplayer_max if has_multiplayer_support(info) else 1
    return PlayerProfile(
        overall_min_players=_or(info.overall_min_players, 1),
        overall_max_players=_or(info.overall_max_players, fallback_max),
        supports_online=supports_online,
        supports_local=supports_local,
        supports_physical=False,
        online_min_players=_or(info.online_min_players, 1) if supports_online else None,
        online_max_players=(
            _or(info.online_max_players, default_multiplayer_max) if supports_online else None
        ),
        local_min_players=_or(info.local_min_players, 1) if supports_local else None,
        local_max_players=(
            _or(info.local_max_players, default_multiplayer_max) if supports_local else None
        ),
    )


def profile_of(record: Any) -> PlayerProfile:
    """Read the profile fields off any CatalogTitleLike."""
    return PlayerProfile(**{name: getattr(record, name) for name in PROFILE_FIELDS})


def profile_fields(profile: PlayerProfile) -> dict[str, Any]:
    return asdict(profile)


def _or(value: int | None, default: int) -> int:
    return default if value is None else value


# ─── Enrichment ──────────────────────────────────────────────────

def needs_player_count_enrichment(info: PlayerInfo | None) -> bool:
    """Multiplayer is indicated but neither online nor local max is known."""
    if info is None:
        return False
    if not (info.supports_online or info.supports_local):
        return False
    return not (
        is_valid_player_count(info.online_max_players)
        or is_valid_player_count(info.local_max_players)
    )


def merge_player_counts(
    base: PlayerInfo | None, enrichment: PlayerInfo | None,
) -> PlayerInfo | None:
    """Per field, keep the most specific known value.

    Max counts prefer a valid enrichment value; every other field keeps the
    base value unless the base is unknown. An unknown never replaces a known.
    """
    if enrichment is None:
        return base
    if base is None:
        return enrichment

    merged: dict[str, Any] = {}
    for f in fields(PlayerInfo):
        mine = getattr(base, f.name)
        theirs = getattr(enrichment, f.name)
        if f.name.endswith("_players"):
            mine = sanitize_count(mine)
            theirs = sanitize_count(theirs)
            if f.name.endswith("_max_players"):
                merged[f.name] = theirs if theirs is not None else mine
            else:
                merged[f.name] = mine if mine is not None else theirs
        else:
            merged[f.name] = mine if mine is not None else theirs
    return replace(base, **merged)
