"""Playnite Provider Normalization — maps Playnite library plugins to provider ids.

Playnite re-exports games from many stores. Each game names the library plugin
it came from (a GUID) and a human-readable source name; both are resolved here
to the same lowercase provider ids the connectors use ("steam", "gog", ...).

Invariants:
    - Unknown plugin ids and unmatched source names resolve to "unknown"
    - Aliases of two characters or fewer only match exactly ("ea" must not match "steam")
    - Entitlement keys are stable across imports for the same underlying game
"""

import re

KNOWN_PLUGINS: dict[str, str] = {
    "cb91dfc9-b977-43bf-8e70-55f46e410fab": "steam",
    "00000001-ebb2-4ecc-abcb-75c4f5a78e18": "epic",
    "00000002-dbb3-46d2-8dc0-f695c3f987f9": "epic",
    "aebe8b7c-6dc3-4a66-af31-e7375c6b5e9e": "gog",
    "85dd7072-2f20-4e76-a007-41035e390724": "ea",
    "00000003-dbb3-46d2-8dc0-f695c3f987f9": "origin",
    "c2f038e5-8b92-4877-91f1-da9094155fc5": "ubisoft",
    "7e4fbb5e-2ae3-48d4-8ba0-6c90e136a77c": "xbox",
    "e4ac81cb-1b1a-4ec9-8639-9a9633989a71": "playstation",
    "ed31b7dd-f6e6-4e31-9152-4d67a6f80e4a": "amazon",
    "00000004-ebb2-4ecc-abcb-75c4f5a78e18": "itch",
    "96e8c4bc-ec5c-4c8b-87e7-da65de62deb5": "humble",
    "e3c26a3d-d695-4cb7-a769-5d3d0da6d1a4": "battlenet",
}

SOURCE_NAME_ALIASES: dict[str, str] = {
    "steam": "steam", "steam store": "steam", "valve steam": "steam",
    "epic": "epic", "epic games": "epic", "epic games store": "epic", "epic store": "epic",
    "gog": "gog", "gog.com": "gog", "gog galaxy": "gog",
    "ea": "ea", "ea app": "ea", "ea play": "ea", "origin": "ea", "ea origin": "ea",
    "electronic arts": "ea",
    "ubisoft": "ubisoft", "ubisoft connect": "ubisoft", "uplay": "ubisoft", "ubi": "ubisoft",
    "xbox": "xbox", "xbox game pass": "xbox", "microsoft": "xbox",
    "microsoft store": "xbox", "windows store": "xbox",
    "playstation": "playstation", "psn": "playstation", "ps store": "playstation",
    "playstation store": "playstation", "playstation network": "playstation",
    "amazon": "amazon", "amazon games": "amazon", "prime gaming": "amazon",
    "itch": "itch", "itch.io": "itch",
    "humble": "humble", "humble bundle": "humble", "humble store": "humble",
    "battlenet": "battlenet", "battle.net": "battlenet", "blizzard": "battlenet",
    "nintendo": "nintendo", "nintendo eshop": "nintendo", "eshop": "nintendo",
    "rockstar": "rockstar", "rockstar games": "rockstar",
    "bethesda": "bethesda", "bethesda.net": "bethesda",
    "indiegala": "indiegala", "indie gala": "indiegala",
}

_ALIAS_PATTERNS = [
    (re.compile(rf"\b{re.escape(alias)}\b", re.I), provider)
    for alias, provider in SOURCE_NAME_ALIASES.items()
    if len(alias) > 2
]

_STORE_URL_TEMPLATES: dict[str, str] = {
    "steam": "https://store.steampowered.com/app/{game_id}",
    "xbox": "https://www.xbox.com/games/store/-/{game_id}",
}

UNKNOWN_PROVIDER = "unknown"


def normalize_plugin_id(plugin_id: str | None) -> str:
    if not plugin_id:
        return UNKNOWN_PROVIDER
    return KNOWN_PLUGINS.get(plugin_id.strip().lower(), UNKNOWN_PROVIDER)


def normalize_source_name(source_name: str | None) -> str:
    if not source_name:
        return UNKNOWN_PROVIDER
    name = source_name.strip().lower()
    if name in SOURCE_NAME_ALIASES:
        return SOURCE_NAME_ALIASES[name]
    for pattern, provider in _ALIAS_PATTERNS:
        if pattern.search(name):
            return provider
    return UNKNOWN_PROVIDER


def resolve_original_provider(plugin_id: str | None, source_name: str | None) -> str:
    provider = normalize_plugin_id(plugin_id)
    if provider == UNKNOWN_PROVIDER:
        provider = normalize_source_name(source_name)
    return provider


def build_store_url(provider: str, game_id: str | None) -> str | None:
    template = _STORE_URL_TEMPLATES.get(provider)
    if not template or not game_id:
        return None
    return template.format(game_id=game_id)


def derive_entitlement_key(
    database_id: str, plugin_id: str | None, original_game_id: str | None,
    explicit_key: str | None = None,
) -> tuple[str, bool]:
    """Return (entitlement key, needs_review).

    Prefers the agent's explicit key, then playnite:<plugin>:<game id>, and
    falls back to the Playnite database id, which is not stable across
    reinstalls and therefore flags the entry for review.
    """
    if explicit_key:
        return explicit_key, False
    if plugin_id and original_game_id:
        return f"playnite:{plugin_id}:{original_game_id}", False
    return f"playnite-db:{database_id}", True
