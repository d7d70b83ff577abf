"""Steam Connector — pull-style library sync via the Steam Web API.

Invariants:
    - credentials.external_user_id must be a 17-digit SteamID64
    - 401/403 from Steam means the server API key is bad: API_KEY_INVALID, never retried
    - Transport failures after retries surface as NETWORK_ERROR
    - sync_library never raises; every failure becomes LibrarySyncResult(success=False)

Design Decisions:
    - Empty library triggers a profile-visibility check so a private profile is
      reported as a successful sync with an explanatory message, not a failure
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from gamesync.core.domain_types import (
    ConnectorCapability, ConnectorErrorCode, SyncStyle,
)
from gamesync.core.errors import ConnectorError
from gamesync.core.provider_contracts import ConnectorManifest
from gamesync.core.records import (
    ConnectorCredentials, LibrarySyncResult, RawExternalGame,
)
from gamesync.infrastructure.http_client import ResilientHttpClient

logger = logging.getLogger(__name__)

STEAM_API_BASE = "https://api.steampowered.com"
STEAM_CDN_HEADER = "https://cdn.cloudflare.steamstatic.com/steam/apps/{appid}/header.jpg"
STEAM_STORE_APP = "https://store.steampowered.com/app/{appid}"

_STEAM_ID = re.compile(r"\d{17}")
_PUBLIC_VISIBILITY = 3

STEAM_MANIFEST = ConnectorManifest(
    id="steam",
    name="Steam",
    provider="steam",
    sync_style=SyncStyle.PULL,
    capabilities=frozenset({
        ConnectorCapability.LIBRARY_SYNC, ConnectorCapability.PLAYTIME_SYNC,
    }),
)


def is_valid_steam_id(value: str | None) -> bool:
    return bool(value) and _STEAM_ID.fullmatch(value.strip()) is not None


class SteamConnector:
    """Fetches owned games for a SteamID64."""

    manifest = STEAM_MANIFEST

    def __init__(self, http: ResilientHttpClient, api_key: str | None):
        self._http = http
        self._api_key = api_key

    async def sync_library(self, credentials: ConnectorCredentials) -> LibrarySyncResult:
        if not self._api_key:
            return LibrarySyncResult(
                success=False,
                error="Steam Web API key not configured",
                error_code=ConnectorErrorCode.API_KEY_INVALID.value,
            )
        steam_id = (credentials.external_user_id or "").strip()
        if not is_valid_steam_id(steam_id):
            return LibrarySyncResult(
                success=False,
                error="Invalid SteamID64. Please re-link your Steam account.",
                error_code=ConnectorErrorCode.INVALID_CREDENTIALS.value,
            )
        try:
            games = await self._get_owned_games(steam_id)
            if not games and not await self._is_profile_public(steam_id):
                return LibrarySyncResult(
                    success=True,
                    error=(
                        "Owned games not visible. Check Steam privacy settings "
                        "to allow game details visibility."
                    ),
                )
        except ConnectorError as e:
            logger.warning(
                f"Steam sync failed: {e.message}",
                extra={"provider_id": "steam", "error_code": e.code},
            )
            return LibrarySyncResult(success=False, error=e.message, error_code=e.code)
        return LibrarySyncResult(success=True, games=games)

    async def _get_owned_games(self, steam_id: str) -> list[RawExternalGame]:
        data = await self._request(
            f"{STEAM_API_BASE}/IPlayerService/GetOwnedGames/v1/",
            {
                "key": self._api_key,
                "steamid": steam_id,
                "include_appinfo": 1,
                "skip_unvetted_apps": 0,
                "format": "json",
            },
        )
        games = (data.get("response") or {}).get("games") or []
        return [_to_raw_game(g) for g in games if g.get("appid")]

    async def _is_profile_public(self, steam_id: str) -> bool:
        data = await self._request(
            f"{STEAM_API_BASE}/ISteamUser/GetPlayerSummaries/v2/",
            {"key": self._api_key, "steamids": steam_id},
        )
        players = (data.get("response") or {}).get("players") or []
        if not players:
            raise ConnectorError(
                "Steam profile not found",
                ConnectorErrorCode.INVALID_CREDENTIALS.value, "steam",
            )
        return players[0].get("communityvisibilitystate") == _PUBLIC_VISIBILITY

    async def _request(self, url: str, params: dict[str, Any]) -> dict:
        try:
            response = await self._http.get(url, params=params)
        except httpx.HTTPError as e:
            raise ConnectorError(
                f"Network error communicating with Steam API: {e}",
                ConnectorErrorCode.NETWORK_ERROR.value, "steam",
            )
        if response.status_code in (401, 403):
            raise ConnectorError(
                "Steam API key invalid or blocked",
                ConnectorErrorCode.API_KEY_INVALID.value, "steam",
            )
        if response.status_code == 429 or response.status_code >= 500:
            raise ConnectorError(
                f"Steam API unavailable ({response.status_code})",
                ConnectorErrorCode.NETWORK_ERROR.value, "steam",
            )
        if not response.is_success:
            raise ConnectorError(
                f"Steam API returned {response.status_code}",
                ConnectorErrorCode.UPSTREAM_ERROR.value, "steam",
            )
        try:
            return response.json()
        except ValueError:
            raise ConnectorError(
                "Steam API returned malformed JSON",
                ConnectorErrorCode.UPSTREAM_ERROR.value, "steam",
            )


def _to_raw_game(game: dict) -> RawExternalGame:
    appid = game["appid"]
    last_played = game.get("rtime_last_played")
    return RawExternalGame(
        external_game_id=str(appid),
        name=game.get("name") or f"Steam App {appid}",
        playtime_minutes=game.get("playtime_forever"),
        last_played_at=(
            datetime.fromtimestamp(last_played, tz=timezone.utc) if last_played else None
        ),
        platform="PC",
        cover_image_url=STEAM_CDN_HEADER.format(appid=appid),
        store_url=STEAM_STORE_APP.format(appid=appid),
        raw_payload=dict(game),
    )
