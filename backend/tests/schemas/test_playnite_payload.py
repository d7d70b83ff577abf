"""Playnite payload validation — camelCase wire format, blanks as absent.

Invariants:
    - aggregator must be "playnite"
    - Required game fields rejected when missing
    - Empty optional strings read as None
    - storeUrl must be http(s)
    - Unknown game keys tolerated
"""

import pytest
from pydantic import ValidationError

from gamesync.schemas.playnite_payload import PlayniteImportPayload


def make_game(**overrides):
    game = {
        "playniteDatabaseId": "db-1",
        "name": "Portal 2",
        "originalProviderPluginId": "cb91dfc9-b977-43bf-8e70-55f46e410fab",
        "originalProviderName": "Steam",
        "originalProviderGameId": "620",
    }
    game.update(overrides)
    return game


def make_payload(*games, **overrides):
    payload = {
        "aggregator": "playnite",
        "exportedAt": "2024-05-01T12:00:00Z",
        "games": list(games) or [make_game()],
    }
    payload.update(overrides)
    return payload


def test_valid_payload_parses_camel_case():
    payload = PlayniteImportPayload.model_validate(make_payload())
    game = payload.games[0]
    assert game.playnite_database_id == "db-1"
    assert game.original_provider_game_id == "620"
    assert payload.exported_at.year == 2024


def test_wrong_aggregator_rejected():
    with pytest.raises(ValidationError):
        PlayniteImportPayload.model_validate(make_payload(aggregator="launchbox"))


def test_missing_required_game_field_rejected():
    game = make_game()
    del game["originalProviderName"]
    with pytest.raises(ValidationError) as exc:
        PlayniteImportPayload.model_validate(make_payload(game))
    assert exc.value.errors()[0]["loc"][-1] == "originalProviderName"


def test_whitespace_name_rejected():
    with pytest.raises(ValidationError):
        PlayniteImportPayload.model_validate(make_payload(make_game(name="   ")))


def test_blank_optional_strings_become_none():
    payload = PlayniteImportPayload.model_validate(
        make_payload(make_game(originalProviderGameId="", storeUrl="  ", lastActivity="")),
    )
    game = payload.games[0]
    assert game.original_provider_game_id is None
    assert game.store_url is None
    assert game.last_activity is None


def test_store_url_must_be_http():
    with pytest.raises(ValidationError):
        PlayniteImportPayload.model_validate(
            make_payload(make_game(storeUrl="steam://run/620")),
        )


def test_installed_alias_accepted():
    payload = PlayniteImportPayload.model_validate(make_payload(make_game(installed=True)))
    assert payload.games[0].is_installed is True


def test_unknown_game_keys_tolerated():
    payload = PlayniteImportPayload.model_validate(make_payload(make_game(favorite=True)))
    assert payload.games[0].name == "Portal 2"


def test_negative_playtime_rejected():
    with pytest.raises(ValidationError):
        PlayniteImportPayload.model_validate(make_payload(make_game(playtimeSeconds=-5)))
