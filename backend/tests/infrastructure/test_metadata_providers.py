"""Metadata provider adapters — response parsing for Steam, RAWG and BoardGameGeek."""

import httpx

from gamesync.infrastructure.bgg_metadata_provider import BoardGameGeekMetadataProvider
from gamesync.infrastructure.http_client import ResilientHttpClient
from gamesync.infrastructure.rawg_metadata_provider import (
    RawgMetadataProvider, player_info_from_tags,
)
from gamesync.infrastructure.steam_metadata_provider import (
    SteamMetadataProvider, player_info_from_categories,
)


def http_for(handler) -> ResilientHttpClient:
    return ResilientHttpClient(
        "metadata", max_retries=0, transport=httpx.MockTransport(handler),
    )


STEAM_APPDETAILS = {
    "620": {
        "success": True,
        "data": {
            "steam_appid": 620,
            "name": "Portal 2",
            "short_description": "The <b>sequel</b> to Portal.",
            "about_the_game": "<p>Portal 2 draws from the award-winning formula.</p>",
            "header_image": "https://cdn.example/620/header.jpg",
            "genres": [{"id": "1", "description": "Puzzle"}],
            "developers": ["Valve"],
            "platforms": {"windows": True, "mac": True, "linux": False},
            "release_date": {"date": "Apr 18, 2011"},
            "categories": [{"id": 2}, {"id": 1}, {"id": 36}, {"id": 24}],
        },
    },
}


async def test_steam_appdetails_parsed():
    provider = SteamMetadataProvider(http_for(
        lambda request: httpx.Response(200, json=STEAM_APPDETAILS),
    ))

    metadata = await provider.get_game_metadata("620")

    assert metadata.name == "Portal 2"
    assert metadata.short_description == "The sequel to Portal."
    assert metadata.platforms == ["Windows", "macOS"]
    assert metadata.store_url == "https://store.steampowered.com/app/620"
    info = metadata.player_info
    assert info.supports_online is True
    assert info.supports_local is True
    assert info.overall_max_players is None


async def test_steam_non_numeric_id_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    provider = SteamMetadataProvider(http_for(handler))
    assert await provider.get_game_metadata("playnite-db:1") is None
    assert calls == []


async def test_steam_unsuccessful_appdetails_is_no_data():
    provider = SteamMetadataProvider(http_for(
        lambda request: httpx.Response(200, json={"1": {"success": False}}),
    ))
    assert await provider.get_game_metadata("1") is None


def test_steam_single_player_only_caps_overall_max():
    info = player_info_from_categories({2})
    assert info.overall_max_players == 1
    assert info.supports_online is False


async def test_rawg_without_key_returns_nothing():
    provider = RawgMetadataProvider(http_for(lambda request: httpx.Response(500)), None)
    assert await provider.search_games("Portal") == []
    assert await provider.get_game_metadata("4200") is None


async def test_rawg_search_parsed():
    provider = RawgMetadataProvider(http_for(lambda request: httpx.Response(200, json={
        "results": [{"id": 4200, "name": "Portal 2", "released": "2011-04-18"}],
    })), "key")

    results = await provider.search_games("Portal 2")

    assert results[0].external_id == "4200"
    assert results[0].provider_id == "rawg"


def test_rawg_tags_map_to_support_flags():
    info = player_info_from_tags({"online-co-op", "split-screen"})
    assert info.supports_online and info.supports_local
    assert info.overall_max_players is None
    assert player_info_from_tags({"singleplayer"}).overall_max_players == 1


BGG_THING = """<?xml version="1.0" encoding="utf-8"?>
<items>
  <item type="boardgame" id="13">
    <thumbnail>https://cf.geekdo-images.com/catan_t.jpg</thumbnail>
    <image>https://cf.geekdo-images.com/catan.jpg</image>
    <name type="primary" sortindex="1" value="CATAN" />
    <name type="alternate" sortindex="1" value="Die Siedler von Catan" />
    <description>Trade, build &amp;amp; settle.</description>
    <yearpublished value="1995" />
    <minplayers value="3" />
    <maxplayers value="4" />
    <link type="boardgamecategory" id="1021" value="Economic" />
    <link type="boardgamedesigner" id="11" value="Klaus Teuber" />
  </item>
</items>
"""


async def test_bgg_thing_parsed_with_player_counts():
    provider = BoardGameGeekMetadataProvider(http_for(
        lambda request: httpx.Response(200, text=BGG_THING),
    ))

    metadata = await provider.get_game_metadata("13")

    assert metadata.name == "CATAN"
    assert metadata.description == "Trade, build & settle."
    assert metadata.cover_image_url == "https://cf.geekdo-images.com/catan.jpg"
    assert metadata.genres == ["Economic"]
    info = metadata.player_info
    assert (info.overall_min_players, info.overall_max_players) == (3, 4)
    assert info.supports_physical is True
    assert info.local_max_players == 4


async def test_bgg_malformed_xml_is_no_data():
    provider = BoardGameGeekMetadataProvider(http_for(
        lambda request: httpx.Response(200, text="<items><item"),
    ))
    assert await provider.get_game_metadata("13") is None
