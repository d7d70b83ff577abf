"""Boundary Protocols — persistence contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All storage access goes through these Protocol types
    - Implementations provided by shell via dependency injection
    - Update methods take a field dict and return the refreshed record

Design Decisions:
    - Protocol over ABC: SQLAlchemy repositories and in-memory test doubles both
      satisfy the contract structurally
    - *Like protocols describe the attributes services read, so services never
      depend on ORM classes
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID


# ─── Record shapes ───────────────────────────────────────────────

class CatalogTitleLike(Protocol):
    id: UUID
    name: str
    normalized_name: str
    game_type: str
    description: str | None
    cover_image_url: str | None
    overall_min_players: int
    overall_max_players: int
    supports_online: bool
    supports_local: bool
    supports_physical: bool
    online_min_players: int | None
    online_max_players: int | None
    local_min_players: int | None
    local_max_players: int | None
    physical_min_players: int | None
    physical_max_players: int | None


class CatalogReleaseLike(Protocol):
    id: UUID
    title_id: UUID
    platform: str
    edition: str | None
    release_date: str | None


class ExternalMappingLike(Protocol):
    id: UUID
    provider: str
    external_game_id: str
    owner_id: int
    title_id: UUID | None
    release_id: UUID | None
    status: str


class LibraryEntrySnapshotLike(Protocol):
    account_id: UUID
    external_game_id: str
    external_game_name: str
    playtime_minutes: int | None
    is_installed: bool | None
    last_played_at: datetime | None
    raw_payload: dict


class DigitalCopyLike(Protocol):
    id: UUID
    account_id: UUID
    external_game_id: str
    release_id: UUID
    name: str
    playtime_minutes: int | None
    is_installed: bool | None
    last_played_at: datetime | None
    store_url: str | None
    needs_review: bool


class SyncJobLike(Protocol):
    id: UUID
    account_id: UUID
    job_type: str
    status: str
    parent_job_id: UUID | None
    entries_processed: int
    entries_added: int
    entries_updated: int
    error_message: str | None
    created_at: datetime
    started_at: datetime | None
    finished_at: datetime | None


class ExternalAccountLike(Protocol):
    id: UUID
    owner_id: int
    provider: str
    external_user_id: str | None
    token_ref: str | None
    last_synced_at: datetime | None


class DeviceLike(Protocol):
    id: UUID
    owner_id: int
    account_id: UUID
    provider: str
    device_name: str
    token_hash: str
    created_at: datetime
    last_seen_at: datetime | None
    last_import_at: datetime | None
    revoked_at: datetime | None


# ─── Repositories ────────────────────────────────────────────────

class CatalogRepository(Protocol):
    """Contract for CatalogTitle / CatalogRelease persistence — implemented by shell."""
    async def get_title(self, title_id: UUID) -> CatalogTitleLike | None: ...
    async def find_title_by_normalized_name(
        self, normalized_name: str,
    ) -> CatalogTitleLike | None: ...
    async def create_title(self, fields: dict[str, Any]) -> CatalogTitleLike: ...
    async def update_title(
        self, title_id: UUID, fields: dict[str, Any],
    ) -> CatalogTitleLike: ...
    async def find_release(
        self, title_id: UUID, platform: str, edition: str | None,
    ) -> CatalogReleaseLike | None: ...
    async def create_release(self, fields: dict[str, Any]) -> CatalogReleaseLike: ...
    async def list_releases(self, title_id: UUID) -> list[CatalogReleaseLike]: ...


class LibraryRepository(Protocol):
    """Contract for mapping / snapshot / copy persistence — implemented by shell."""
    async def get_copies_by_external_ids(
        self, account_id: UUID, external_game_ids: list[str],
    ) -> dict[str, DigitalCopyLike]: ...
    async def find_copy(
        self, account_id: UUID, external_game_id: str,
    ) -> DigitalCopyLike | None: ...
    async def create_copy(self, fields: dict[str, Any]) -> DigitalCopyLike: ...
    async def update_copy(self, copy_id: UUID, fields: dict[str, Any]) -> None: ...
    async def get_snapshot(
        self, account_id: UUID, external_game_id: str,
    ) -> LibraryEntrySnapshotLike | None: ...
    async def upsert_snapshot(
        self, account_id: UUID, external_game_id: str, fields: dict[str, Any],
    ) -> None: ...
    async def list_snapshots(
        self, account_id: UUID,
    ) -> list[LibraryEntrySnapshotLike]: ...
    async def get_mapping(
        self, provider: str, external_game_id: str, owner_id: int,
    ) -> ExternalMappingLike | None: ...
    async def create_mapping(self, fields: dict[str, Any]) -> ExternalMappingLike: ...
    async def update_mapping(
        self, mapping_id: UUID, fields: dict[str, Any],
    ) -> ExternalMappingLike: ...


class SyncJobRepository(Protocol):
    """Contract for SyncJob persistence — implemented by shell."""
    async def create(
        self, account_id: UUID, job_type: str, parent_job_id: UUID | None = None,
    ) -> SyncJobLike: ...
    async def get(self, job_id: UUID) -> SyncJobLike | None: ...
    async def update(self, job_id: UUID, fields: dict[str, Any]) -> SyncJobLike: ...
    async def get_latest_for_account(self, account_id: UUID) -> SyncJobLike | None: ...
    async def list_by_status(self, status: str) -> list[SyncJobLike]: ...


class AccountRepository(Protocol):
    """Contract for ExternalAccount persistence — implemented by shell."""
    async def get(self, account_id: UUID) -> ExternalAccountLike | None: ...
    async def update_last_synced(self, account_id: UUID, at: datetime) -> None: ...


class DeviceRepository(Protocol):
    """Contract for push-agent device persistence — implemented by shell."""
    async def create(self, fields: dict[str, Any]) -> DeviceLike: ...
    async def get(self, device_id: UUID) -> DeviceLike | None: ...
    async def list_for_owner(
        self, owner_id: int, account_id: UUID | None = None,
    ) -> list[DeviceLike]: ...
    async def list_active(self, provider: str | None = None) -> list[DeviceLike]: ...
    async def update(self, device_id: UUID, fields: dict[str, Any]) -> DeviceLike: ...
    async def delete(self, device_id: UUID) -> None: ...
