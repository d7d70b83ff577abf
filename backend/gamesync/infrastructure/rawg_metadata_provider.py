"""RAWG Metadata Provider — rawg.io video game database.

Invariants:
    - Without an API key every call returns no data (no request is made)
    - Player support flags come from tag slugs; counts stay unknown except
      for games with no multiplayer tag (overall max 1)
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

RAWG_API = "https://api.rawg.io/api"
MAX_SHORT_DESCRIPTION_LENGTH = 250
MAX_PAGE_SIZE = 40

ONLINE_TAGS = frozenset({
    "online-multiplayer", "online-co-op", "mmo", "massively-multiplayer",
})
LOCAL_TAGS = frozenset({"local-co-op", "local-multiplayer", "split-screen"})
MULTIPLAYER_TAGS = frozenset({"multiplayer", "co-op"}) | ONLINE_TAGS | LOCAL_TAGS


def player_info_from_tags(slugs: set[str]) -> PlayerInfo:
    return PlayerInfo(
        overall_min_players=1,
        overall_max_players=None if slugs & MULTIPLAYER_TAGS else 1,
        supports_online=bool(slugs & ONLINE_TAGS),
        supports_local=bool(slugs & LOCAL_TAGS),
    )


class RawgMetadataProvider:
    manifest = MetadataProviderManifest(
        id="rawg", name="RAWG", game_types=frozenset({GameType.VIDEO_GAME}),
        requires_api_key=True,
    )
    capabilities = ProviderCapabilities(
        supports_search=True, has_descriptions=True, has_cover_images=True,
    )
    rate_limit = RateLimitConfig(request_delay_ms=100, max_consecutive_errors=5)

    def __init__(self, http: ResilientHttpClient, api_key: str | None):
        self._http = http
        self._api_key = api_key

    async def search_games(self, query: str, limit: int = 10) -> list[MetadataSearchResult]:
        if not self._api_key:
            logger.debug("RAWG API key not configured")
            return []
        response = await provider_get(
            self._http, "rawg", f"{RAWG_API}/games",
            {
                "key": self._api_key,
                "search": query,
                "page_size": min(limit, MAX_PAGE_SIZE),
            },
        )
        if response is None:
            return []
        return [
            MetadataSearchResult(
                external_id=str(game["id"]),
                name=game.get("name", ""),
                provider_id="rawg",
                release_date=game.get("released"),
                cover_image_url=game.get("background_image"),
            )
            for game in response.json().get("results") or []
        ]

    async def get_game_metadata(self, external_id: str) -> FetchedMetadata | None:
        if not self._api_key:
            return None
        response = await provider_get(
            self._http, "rawg", f"{RAWG_API}/games/{external_id}",
            {"key": self._api_key},
        )
        if response is None:
            return None
        data = response.json()
        description = data.get("description_raw") or strip_html(data.get("description"))
        return FetchedMetadata(
            external_id=str(data["id"]),
            provider_id="rawg",
            name=data.get("name", ""),
            description=description or None,
            short_description=(
                truncate_text(description, MAX_SHORT_DESCRIPTION_LENGTH)
                if description else None
            ),
            cover_image_url=data.get("background_image"),
            header_image_url=(
                data.get("background_image_additional") or data.get("background_image")
            ),
            genres=[g["name"] for g in data.get("genres") or []],
            developers=[d["name"] for d in data.get("developers") or []],
            publishers=[p["name"] for p in data.get("publishers") or []],
            platforms=[p["platform"]["name"] for p in data.get("platforms") or []],
            release_date=data.get("released"),
            player_info=player_info_from_tags(
                {t["slug"].lower() for t in data.get("tags") or []},
            ),
            raw_payload=dict(data),
        )

    def get_game_url(self, external_id: str) -> str:
        return f"https://rawg.io/games/{external_id}"
