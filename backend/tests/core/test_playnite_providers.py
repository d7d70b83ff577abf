"""Playnite Providers — plugin and source-name normalization, keys and store URLs."""

from gamesync.core.playnite_providers import (
    UNKNOWN_PROVIDER,
    build_store_url,
    derive_entitlement_key,
    normalize_plugin_id,
    normalize_source_name,
    resolve_original_provider,
)

STEAM_PLUGIN = "cb91dfc9-b977-43bf-8e70-55f46e410fab"


def test_known_plugin_id_is_case_insensitive():
    assert normalize_plugin_id(STEAM_PLUGIN.upper()) == "steam"


def test_unknown_plugin_id():
    assert normalize_plugin_id("00000000-0000-0000-0000-000000000000") == UNKNOWN_PROVIDER
    assert normalize_plugin_id(None) == UNKNOWN_PROVIDER


def test_source_name_aliases():
    assert normalize_source_name("Epic Games Store") == "epic"
    assert normalize_source_name("GOG Galaxy") == "gog"
    assert normalize_source_name("EA") == "ea"


def test_source_name_word_boundary_match():
    assert normalize_source_name("My Steam Library") == "steam"


def test_short_alias_never_matches_inside_words():
    assert normalize_source_name("Dream Team") == UNKNOWN_PROVIDER


def test_plugin_id_wins_over_source_name():
    assert resolve_original_provider(STEAM_PLUGIN, "GOG") == "steam"
    assert resolve_original_provider("not-a-plugin", "GOG") == "gog"


def test_store_url_for_steam_and_xbox_only():
    assert build_store_url("steam", "570") == "https://store.steampowered.com/app/570"
    assert build_store_url("xbox", "9NBLGGH4R315").endswith("/9NBLGGH4R315")
    assert build_store_url("gog", "1207658924") is None
    assert build_store_url("steam", None) is None


def test_entitlement_key_prefers_explicit_key():
    assert derive_entitlement_key("db-1", STEAM_PLUGIN, "570", "custom") == ("custom", False)


def test_entitlement_key_from_plugin_and_game_id():
    assert derive_entitlement_key("db-1", STEAM_PLUGIN, "570") == (
        f"playnite:{STEAM_PLUGIN}:570", False,
    )


def test_entitlement_key_falls_back_to_database_id():
    assert derive_entitlement_key("db-1", STEAM_PLUGIN, None) == ("playnite-db:db-1", True)
