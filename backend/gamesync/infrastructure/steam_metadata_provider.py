"""Steam Store Metadata Provider — appdetails for metadata, storesearch for lookup by name.

Invariants:
    - External ids are numeric Steam app ids; anything else yields no metadata
    - 429 raises MetadataRateLimitError, 5xx/transport raise MetadataApiError,
      any other miss returns None (see provider_get)
    - Steam categories only say whether a mode exists, never how many players:
      max counts stay unknown except the single-player-only case (overall max 1)
"""

import logging

from gamesync.core.descriptions import strip_html, truncate_text
from gamesync.core.domain_types import GameType
from gamesync.core.provider_contracts import (
    MetadataProviderManifest, ProviderCapabilities, RateLimitConfig,
)
from gamesync.core.records import FetchedMetadata, MetadataSearchResult, PlayerInfo
from gamesync.infrastructure.http_client import ResilientHttpClient, provider_get

logger = logging.getLogger(__name__)

STEAM_STORE_API = "https://store.steampowered.com/api"
STEAM_CDN_HEADER = "https://cdn.cloudflare.steamstatic.com/steam/apps/{appid}/header.jpg"
MAX_SHORT_DESCRIPTION_LENGTH = 250

SINGLE_PLAYER = frozenset({2})
MULTIPLAYER = frozenset({1, 9, 20, 49})
ONLINE = frozenset({36, 38, 27, 20})
LOCAL = frozenset({24, 37, 39})


def player_info_from_categories(category_ids: set[int]) -> PlayerInfo:
    single = bool(category_ids & SINGLE_PLAYER)
    multi = bool(category_ids & MULTIPLAYER)
    return PlayerInfo(
        overall_min_players=1,
        overall_max_players=1 if single and not multi else None,
        supports_online=bool(category_ids & ONLINE),
        supports_local=bool(category_ids & LOCAL),
    )


class SteamMetadataProvider:
    manifest = MetadataProviderManifest(
        id="steam", name="Steam", game_types=frozenset({GameType.VIDEO_GAME}),
    )
    capabilities = ProviderCapabilities(
        supports_search=True,
        has_descriptions=True,
        has_cover_images=True,
        has_store_urls=True,
    )
    rate_limit = RateLimitConfig(
        request_delay_ms=400,
        max_consecutive_errors=5,
        max_batch_size=5,
        batch_delay_ms=1500,
        max_games_per_sync=500,
        retry_delay_ms=5000,
    )

    def __init__(self, http: ResilientHttpClient):
        self._http = http

    async def search_games(self, query: str, limit: int = 10) -> list[MetadataSearchResult]:
        term = (query or "").strip()
        if len(term) < 2:
            return []
        response = await provider_get(
            self._http, "steam", f"{STEAM_STORE_API}/storesearch/",
            {"term": term, "l": "english", "cc": "US"},
        )
        if response is None:
            return []
        items = response.json().get("items") or []
        return [
            MetadataSearchResult(
                external_id=str(item["id"]),
                name=item.get("name") or f"Steam App {item['id']}",
                provider_id="steam",
                cover_image_url=STEAM_CDN_HEADER.format(appid=item["id"]),
            )
            for item in items[:limit]
            if item.get("id")
        ]

    async def get_game_metadata(self, external_id: str) -> FetchedMetadata | None:
        if not external_id.isdigit():
            return None
        response = await provider_get(
            self._http, "steam", f"{STEAM_STORE_API}/appdetails",
            {"appids": external_id},
        )
        if response is None:
            return None
        entry = response.json().get(external_id) or {}
        if not entry.get("success") or not entry.get("data"):
            return None
        return self._to_metadata(entry["data"])

    def get_game_url(self, external_id: str) -> str:
        return f"https://store.steampowered.com/app/{external_id}"

    def _to_metadata(self, data: dict) -> FetchedMetadata:
        appid = str(data.get("steam_appid"))
        full = strip_html(data.get("about_the_game") or data.get("detailed_description"))
        short = strip_html(data.get("short_description")) or truncate_text(
            full, MAX_SHORT_DESCRIPTION_LENGTH,
        )
        platforms = data.get("platforms") or {}
        return FetchedMetadata(
            external_id=appid,
            provider_id="steam",
            name=data.get("name") or f"Steam App {appid}",
            description=full or None,
            short_description=truncate_text(short, MAX_SHORT_DESCRIPTION_LENGTH) or None,
            cover_image_url=data.get("capsule_imagev5") or data.get("capsule_image"),
            header_image_url=data.get("header_image"),
            genres=[g["description"] for g in data.get("genres") or []],
            developers=list(data.get("developers") or []),
            publishers=list(data.get("publishers") or []),
            platforms=[
                label for key, label in
                (("windows", "Windows"), ("mac", "macOS"), ("linux", "Linux"))
                if platforms.get(key)
            ],
            release_date=(data.get("release_date") or {}).get("date"),
            store_url=self.get_game_url(appid),
            player_info=player_info_from_categories(
                {c["id"] for c in data.get("categories") or []},
            ),
            raw_payload=dict(data),
        )
