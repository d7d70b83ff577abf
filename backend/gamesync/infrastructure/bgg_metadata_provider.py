"""BoardGameGeek Metadata Provider — XML API 2 for board, card and tabletop games.

Invariants:
    - Player counts from <minplayers>/<maxplayers> are authoritative
      (has_accurate_player_counts)
    - Physical play always supported; local play iff max players > 1
    - Unparseable XML yields no data rather than an error
"""

import logging
import xml.etree.ElementTree as ET

from gamesync.core.descriptions import strip_html, truncate_text
from gamesync.core.domain_types import GameType
from gamesync.core.player_profile import sanitize_count
from gamesync.core.provider_contracts import (
    MetadataProviderManifest, ProviderCapabilities, RateLimitConfig,
)
from gamesync.core.records import FetchedMetadata, MetadataSearchResult, PlayerInfo
from gamesync.infrastructure.http_client import ResilientHttpClient, provider_get

logger = logging.getLogger(__name__)

BGG_API = "https://boardgamegeek.com/xmlapi2"
MAX_SHORT_DESCRIPTION_LENGTH = 250


def _value(item: ET.Element, tag: str) -> str | None:
    node = item.find(tag)
    return node.get("value") if node is not None else None


def _int_value(item: ET.Element, tag: str) -> int | None:
    raw = _value(item, tag)
    return sanitize_count(int(raw)) if raw and raw.isdigit() else None


def _links(item: ET.Element, link_type: str) -> list[str]:
    return [
        link.get("value", "") for link in item.findall("link")
        if link.get("type") == link_type
    ]


def _parse(text: str) -> ET.Element | None:
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        logger.warning(f"BGG returned malformed XML: {e}", extra={"provider_id": "boardgamegeek"})
        return None


class BoardGameGeekMetadataProvider:
    manifest = MetadataProviderManifest(
        id="boardgamegeek",
        name="BoardGameGeek",
        game_types=frozenset({
            GameType.BOARD_GAME, GameType.CARD_GAME, GameType.TABLETOP_RPG,
        }),
    )
    capabilities = ProviderCapabilities(
        supports_search=True,
        has_accurate_player_counts=True,
        has_descriptions=True,
        has_cover_images=True,
    )
    rate_limit = RateLimitConfig(request_delay_ms=1100, max_consecutive_errors=5)

    def __init__(self, http: ResilientHttpClient):
        self._http = http

    async def search_games(self, query: str, limit: int = 10) -> list[MetadataSearchResult]:
        term = (query or "").strip()
        if len(term) < 2:
            return []
        response = await provider_get(
            self._http, "boardgamegeek", f"{BGG_API}/search",
            {"query": term, "type": "boardgame,boardgameexpansion"},
        )
        root = _parse(response.text) if response is not None else None
        if root is None:
            return []
        results = []
        for item in root.findall("item")[:limit]:
            name = _value(item, "name")
            if not item.get("id") or not name:
                continue
            results.append(MetadataSearchResult(
                external_id=item.get("id"),
                name=name,
                provider_id="boardgamegeek",
                release_date=_value(item, "yearpublished"),
            ))
        return results

    async def get_game_metadata(self, external_id: str) -> FetchedMetadata | None:
        if not external_id.isdigit():
            return None
        response = await provider_get(
            self._http, "boardgamegeek", f"{BGG_API}/thing",
            {"id": external_id, "stats": 1},
        )
        root = _parse(response.text) if response is not None else None
        if root is None:
            return None
        item = next(
            (i for i in root.findall("item") if i.get("id") == external_id), None,
        )
        return self._to_metadata(item, external_id) if item is not None else None

    def get_game_url(self, external_id: str) -> str:
        return f"https://boardgamegeek.com/boardgame/{external_id}"

    def _to_metadata(self, item: ET.Element, external_id: str) -> FetchedMetadata:
        primary = next(
            (n.get("value") for n in item.findall("name") if n.get("type") == "primary"),
            None,
        )
        description = strip_html(item.findtext("description"))
        min_players = _int_value(item, "minplayers") or 1
        max_players = max(_int_value(item, "maxplayers") or min_players, min_players)
        local = max_players > 1
        cover = (item.findtext("image") or item.findtext("thumbnail") or "").strip() or None
        return FetchedMetadata(
            external_id=external_id,
            provider_id="boardgamegeek",
            name=primary or f"BoardGame {external_id}",
            description=description or None,
            short_description=(
                truncate_text(description, MAX_SHORT_DESCRIPTION_LENGTH)
                if description else None
            ),
            cover_image_url=cover,
            header_image_url=cover,
            genres=_links(item, "boardgamecategory"),
            developers=_links(item, "boardgamedesigner")[:5],
            publishers=_links(item, "boardgamepublisher")[:3],
            platforms=["Physical"],
            release_date=_value(item, "yearpublished"),
            store_url=self.get_game_url(external_id),
            player_info=PlayerInfo(
                overall_min_players=min_players,
                overall_max_players=max_players,
                supports_online=False,
                supports_local=local,
                supports_physical=True,
                local_min_players=min_players if local else None,
                local_max_players=max_players if local else None,
                physical_min_players=min_players,
                physical_max_players=max_players,
            ),
            raw_payload={"id": external_id, "type": item.get("type")},
        )
