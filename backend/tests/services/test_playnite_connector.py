"""Playnite Connector — import preprocessing and device-token lifecycle.

Invariants:
    - Tokens are 64 hex characters, returned once, stored only as argon2 hashes
    - A revoked device never verifies
    - Another owner's device is reported as not found
    - Playtime arrives in seconds and is stored in minutes
"""

import pytest

from gamesync.core.errors import (
    InputValidationError, PushImportRejectedError, ResourceNotFoundError,
)
from gamesync.core.records import ConnectorCredentials
from gamesync.infrastructure.playnite_connector import PlayniteConnector

from tests.services.fakes import OWNER_ID

GOG_PLUGIN = "aebe8b7c-6dc3-4a66-af31-e7375c6b5e9e"


@pytest.fixture
def playnite(devices, hasher):
    return PlayniteConnector(devices, hasher)


async def test_pull_sync_is_not_supported(playnite):
    result = await playnite.sync_library(ConnectorCredentials("anyone"))
    assert not result.success
    assert "push-style" in result.error


async def test_preprocess_normalizes_games(playnite):
    imported = await playnite.preprocess_import({
        "aggregator": "playnite",
        "exportedAt": "2024-05-01T12:00:00Z",
        "games": [{
            "playniteDatabaseId": "db-1",
            "name": " The Witcher 3 ",
            "originalProviderPluginId": GOG_PLUGIN,
            "originalProviderName": "GOG",
            "originalProviderGameId": "1207664663",
            "playtimeSeconds": 7200,
            "platforms": ["PC (Windows)"],
        }],
    })

    game = imported.games[0]
    assert imported.entitlement_keys == [f"playnite:{GOG_PLUGIN}:1207664663"]
    assert game.external_game_id == imported.entitlement_keys[0]
    assert game.name == "The Witcher 3"
    assert game.playtime_minutes == 120
    assert game.platform == "PC (Windows)"
    assert game.original_provider_normalized_id == "gog"
    assert game.store_url is None
    assert imported.warnings == []


async def test_preprocess_rejects_invalid_payload_with_details(playnite):
    with pytest.raises(PushImportRejectedError) as exc:
        await playnite.preprocess_import({"aggregator": "playnite", "games": [{}]})

    fields = {d["field"] for d in exc.value.details}
    assert "exportedAt" in fields
    assert "games.0.name" in fields


async def test_register_returns_token_once_and_stores_hash(playnite, playnite_account):
    device, token = await playnite.register_device(OWNER_ID, playnite_account.id, " Deck ")

    assert len(token) == 64
    int(token, 16)
    assert device.device_name == "Deck"
    assert device.token_hash != token
    assert token not in device.token_hash


async def test_blank_device_name_rejected(playnite, playnite_account):
    with pytest.raises(InputValidationError):
        await playnite.register_device(OWNER_ID, playnite_account.id, "   ")


async def test_verify_token_updates_last_seen(playnite, playnite_account):
    device, token = await playnite.register_device(OWNER_ID, playnite_account.id, "Deck")

    verified = await playnite.verify_device_token(token)

    assert verified.id == device.id
    assert verified.last_seen_at is not None
    assert await playnite.verify_device_token("0" * 64) is None
    assert await playnite.verify_device_token("") is None


async def test_revoked_device_never_verifies(playnite, playnite_account):
    device, token = await playnite.register_device(OWNER_ID, playnite_account.id, "Deck")

    revoked = await playnite.revoke_device(device.id, OWNER_ID)
    again = await playnite.revoke_device(device.id, OWNER_ID)

    assert revoked.revoked_at is not None
    assert again.revoked_at == revoked.revoked_at
    assert await playnite.verify_device_token(token) is None


async def test_list_devices_scoped_to_owner_and_account(playnite, playnite_account, accounts):
    other = await accounts.create({"owner_id": OWNER_ID + 1, "provider": "playnite"})
    await playnite.register_device(OWNER_ID, playnite_account.id, "Desktop")
    await playnite.register_device(OWNER_ID + 1, other.id, "Laptop")

    devices = await playnite.list_devices(OWNER_ID, playnite_account.id)

    assert [d.device_name for d in devices] == ["Desktop"]


async def test_other_owners_device_is_not_found(playnite, playnite_account):
    device, _ = await playnite.register_device(OWNER_ID, playnite_account.id, "Deck")

    with pytest.raises(ResourceNotFoundError):
        await playnite.delete_device(device.id, OWNER_ID + 1)

    await playnite.delete_device(device.id, OWNER_ID)
    assert await playnite.list_devices(OWNER_ID) == []
