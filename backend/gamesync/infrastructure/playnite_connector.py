"""Playnite Connector — push-style aggregator connector with device-token auth.

Invariants:
    - preprocess_import either returns fully normalized RawExternalGames or raises
      PushImportRejectedError; no partial payload is ever processed
    - externalGameId of every game is its entitlement key
    - Device tokens: 32 random bytes hex-encoded, returned once, stored only as argon2 hashes
    - A revoked device never verifies
    - Device operations are scoped by owner: another owner's device is "not found"

Design Decisions:
    - argon2 hashing runs in a worker thread (asyncio.to_thread): it is CPU-bound
      and must not stall the event loop
    - verify_device_token is O(active devices): argon2 hashes are salted, so a
      token cannot be looked up by hash. Acceptable for expected device counts
"""

import asyncio
import logging
import secrets
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from pydantic import ValidationError

from gamesync.core.domain_types import ConnectorCapability, SyncStyle
from gamesync.core.errors import (
    InputValidationError, PushImportRejectedError, ResourceNotFoundError,
)
from gamesync.core.playnite_providers import (
    build_store_url, derive_entitlement_key, resolve_original_provider,
)
from gamesync.core.provider_contracts import ConnectorManifest
from gamesync.core.records import (
    ConnectorCredentials, ImportWarning, LibrarySyncResult, PreprocessedImport,
    RawExternalGame,
)
from gamesync.core.repository_protocols import DeviceLike, DeviceRepository
from gamesync.schemas.playnite_payload import PlayniteGame, PlayniteImportPayload

logger = logging.getLogger(__name__)

PLAYNITE_MANIFEST = ConnectorManifest(
    id="playnite",
    name="Playnite",
    provider="playnite",
    sync_style=SyncStyle.PUSH,
    capabilities=frozenset({
        ConnectorCapability.LIBRARY_SYNC,
        ConnectorCapability.PLAYTIME_SYNC,
        ConnectorCapability.INSTALLED_SYNC,
        ConnectorCapability.DEVICE_MANAGEMENT,
    }),
    is_aggregator=True,
    supports_devices=True,
)

MISSING_ORIGINAL_GAME_ID = "MISSING_ORIGINAL_GAME_ID"
_TOKEN_BYTES = 32


class PlayniteConnector:
    """Receives libraries pushed by the Playnite extension."""

    manifest = PLAYNITE_MANIFEST

    def __init__(self, devices: DeviceRepository, hasher: PasswordHasher | None = None):
        self._devices = devices
        self._hasher = hasher or PasswordHasher()

    async def sync_library(self, credentials: ConnectorCredentials) -> LibrarySyncResult:
        return LibrarySyncResult(
            success=False,
            error=(
                "Playnite is a push-style connector. "
                "Use the Playnite extension to sync your library."
            ),
        )

    # ─── Import ──────────────────────────────────────────────────

    async def preprocess_import(self, raw_payload: Any) -> PreprocessedImport:
        try:
            payload = PlayniteImportPayload.model_validate(raw_payload)
        except ValidationError as e:
            details = [
                {
                    "field": ".".join(str(loc) for loc in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            raise PushImportRejectedError("Invalid import payload", details)

        games: list[RawExternalGame] = []
        keys: list[str] = []
        warnings: list[ImportWarning] = []
        needs_review = 0
        for game in payload.games:
            key, key_needs_review = derive_entitlement_key(
                game.playnite_database_id,
                game.original_provider_plugin_id,
                game.original_provider_game_id,
                game.entitlement_key,
            )
            if not game.original_provider_game_id:
                warnings.append(ImportWarning(
                    code=MISSING_ORIGINAL_GAME_ID,
                    message=f"'{game.name}' has no original provider game id",
                    external_game_id=key,
                ))
                key_needs_review = True
            if key_needs_review:
                needs_review += 1
            keys.append(key)
            games.append(_to_raw_game(game, key))
        return PreprocessedImport(
            games=games, entitlement_keys=keys,
            warnings=warnings, needs_review_count=needs_review,
        )

    # ─── Devices ─────────────────────────────────────────────────

    async def register_device(
        self, owner_id: int, account_id: UUID, device_name: str,
    ) -> tuple[DeviceLike, str]:
        name = (device_name or "").strip()
        if not name:
            raise InputValidationError("Device name is required", "device_name")
        token = secrets.token_hex(_TOKEN_BYTES)
        token_hash = await asyncio.to_thread(self._hasher.hash, token)
        device = await self._devices.create({
            "owner_id": owner_id,
            "account_id": account_id,
            "provider": self.manifest.provider,
            "device_name": name,
            "token_hash": token_hash,
        })
        logger.info(
            f"Registered device '{name}'",
            extra={"account_id": account_id, "provider_id": self.manifest.provider},
        )
        return device, token

    async def list_devices(
        self, owner_id: int, account_id: UUID | None = None,
    ) -> list[DeviceLike]:
        devices = await self._devices.list_for_owner(owner_id, account_id)
        return [d for d in devices if d.provider == self.manifest.provider]

    async def revoke_device(self, device_id: UUID, owner_id: int) -> DeviceLike:
        device = await self._owned_device(device_id, owner_id)
        if device.revoked_at is not None:
            return device
        return await self._devices.update(
            device.id, {"revoked_at": datetime.now(timezone.utc)},
        )

    async def delete_device(self, device_id: UUID, owner_id: int) -> None:
        device = await self._owned_device(device_id, owner_id)
        await self._devices.delete(device.id)

    async def verify_device_token(self, token: str) -> DeviceLike | None:
        if not token:
            return None
        for device in await self._devices.list_active(self.manifest.provider):
            if await asyncio.to_thread(self._matches, device.token_hash, token):
                return await self._devices.update(
                    device.id, {"last_seen_at": datetime.now(timezone.utc)},
                )
        return None

    def _matches(self, token_hash: str, token: str) -> bool:
        try:
            return self._hasher.verify(token_hash, token)
        except (VerificationError, InvalidHashError):
            return False

    async def _owned_device(self, device_id: UUID, owner_id: int) -> DeviceLike:
        device = await self._devices.get(device_id)
        if device is None or device.owner_id != owner_id:
            raise ResourceNotFoundError("ConnectorDevice", str(device_id))
        return device


def _to_raw_game(game: PlayniteGame, entitlement_key: str) -> RawExternalGame:
    provider = resolve_original_provider(
        game.original_provider_plugin_id, game.original_provider_name,
    )
    store_url = game.store_url or build_store_url(provider, game.original_provider_game_id)
    playtime = (
        round(game.playtime_seconds / 60) if game.playtime_seconds is not None else None
    )
    return RawExternalGame(
        external_game_id=entitlement_key,
        name=game.name,
        playtime_minutes=playtime,
        is_installed=game.is_installed,
        last_played_at=game.last_activity,
        platform=game.platforms[0] if game.platforms else "PC",
        store_url=store_url,
        raw_payload=game.raw or game.model_dump(mode="json", by_alias=True, exclude={"raw"}),
        original_provider_plugin_id=game.original_provider_plugin_id,
        original_provider_name=game.original_provider_name,
        original_provider_game_id=game.original_provider_game_id,
        original_provider_normalized_id=provider,
    )
