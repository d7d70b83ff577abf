"""Transient Records — value objects that flow between connectors, pipeline and processor.

Invariants:
    - RawExternalGame is immutable within a run (frozen); derived variants use dataclasses.replace
    - PlayerInfo fields are all optional: None means "unknown", never "zero"
    - PlayerProfile is the complete, persisted shape; PlayerInfo is the partial, incoming one
    - FetchedMetadata always carries the provider id and the provider's external id

Design Decisions:
    - Dataclasses over pydantic here: these never cross an HTTP boundary directly
      and core stays free of validation machinery
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from gamesync.core.domain_types import JobId


# ─── Player counts ───────────────────────────────────────────────

@dataclass(frozen=True)
class PlayerInfo:
    """Partial player-count information as reported by a source."""
    overall_min_players: int | None = None
    overall_max_players: int | None = None
    supports_online: bool | None = None
    supports_local: bool | None = None
    supports_physical: bool | None = None
    online_min_players: int | None = None
    online_max_players: int | None = None
    local_min_players: int | None = None
    local_max_players: int | None = None
    physical_min_players: int | None = None
    physical_max_players: int | None = None


@dataclass(frozen=True)
class PlayerProfile:
    """Complete player-count profile stored on a CatalogTitle."""
    overall_min_players: int = 1
    overall_max_players: int = 1
    supports_online: bool = False
    supports_local: bool = False
    supports_physical: bool = False
    online_min_players: int | None = None
    online_max_players: int | None = None
    local_min_players: int | None = None
    local_max_players: int | None = None
    physical_min_players: int | None = None
    physical_max_players: int | None = None


# ─── Connector output ────────────────────────────────────────────

@dataclass(frozen=True)
class RawExternalGame:
    """One owned game as a connector reports it."""
    external_game_id: str
    name: str
    playtime_minutes: int | None = None
    is_installed: bool | None = None
    last_played_at: datetime | None = None
    platform: str | None = None
    description: str | None = None
    cover_image_url: str | None = None
    release_date: str | None = None
    store_url: str | None = None
    player_info: PlayerInfo = field(default_factory=PlayerInfo)
    raw_payload: dict[str, Any] = field(default_factory=dict)
    # Aggregator provenance
    original_provider_plugin_id: str | None = None
    original_provider_name: str | None = None
    original_provider_game_id: str | None = None
    original_provider_normalized_id: str | None = None


@dataclass(frozen=True)
class ConnectorCredentials:
    external_user_id: str
    token_ref: str | None = None


@dataclass
class LibrarySyncResult:
    """Outcome of a pull-style library fetch."""
    success: bool
    games: list[RawExternalGame] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class ImportWarning:
    code: str
    message: str
    external_game_id: str | None = None


@dataclass
class PreprocessedImport:
    """Push payload normalized by its connector."""
    games: list[RawExternalGame]
    entitlement_keys: list[str]
    warnings: list[ImportWarning] = field(default_factory=list)
    needs_review_count: int = 0


# ─── Metadata ────────────────────────────────────────────────────

@dataclass
class FetchedMetadata:
    """Provider-sourced enrichment for one game."""
    external_id: str
    provider_id: str
    name: str
    description: str | None = None
    short_description: str | None = None
    cover_image_url: str | None = None
    header_image_url: str | None = None
    genres: list[str] = field(default_factory=list)
    developers: list[str] = field(default_factory=list)
    publishers: list[str] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    release_date: str | None = None
    store_url: str | None = None
    player_info: PlayerInfo | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MetadataSearchResult:
    external_id: str
    name: str
    provider_id: str
    release_date: str | None = None
    cover_image_url: str | None = None


@dataclass
class MetadataFetchResult:
    """Outcome of a manual per-title metadata lookup."""
    metadata: FetchedMetadata | None
    provider_id: str | None = None
    enriched: bool = False


# ─── Sync results ────────────────────────────────────────────────

@dataclass
class BatchStats:
    """Aggregate counts returned by the game processor."""
    entries_processed: int = 0
    entries_added: int = 0
    entries_updated: int = 0
    titles_created: int = 0
    releases_created: int = 0
    copies_created: int = 0


@dataclass
class ImportCounts:
    received: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    soft_removed: int = 0
    needs_review: int = 0


@dataclass
class PushImportSummary:
    """Returned to the push agent as soon as the fast path finishes."""
    device_id: str
    imported_at: datetime
    job_id: JobId
    enrichment_job_id: JobId | None
    counts: ImportCounts
    warnings: list[ImportWarning] = field(default_factory=list)


@dataclass
class SyncStatus:
    account_id: str
    last_synced_at: datetime | None
    latest_job: Any | None
    is_scheduled: bool
